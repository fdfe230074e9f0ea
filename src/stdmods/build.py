"""Sequential build passes against one shared manifest."""

from __future__ import annotations

import logging
from typing import cast

from stdmods.bundler import (
    Bundler,
    InputOptions,
    OutputChunk,
    OutputFormat,
    OutputOptions,
)
from stdmods.config import BuildPass, ProjectConfig
from stdmods.manifest import Manifest, load_manifest
from stdmods.plugins import AssetManifestPlugin, BuiltinModulePlugin

logger = logging.getLogger(__name__)


def run_pass(
    config: ProjectConfig,
    build_pass: BuildPass,
    manifest_plugin: AssetManifestPlugin | None = None,
) -> dict[str, OutputChunk]:
    if manifest_plugin is None:
        manifest_plugin = AssetManifestPlugin(config.manifest_name)
    plugins = [
        BuiltinModulePlugin(
            config.module_map, code_split=build_pass.code_split, root=config.root
        ),
        manifest_plugin,
    ]
    bundler = Bundler(
        InputOptions(input=dict(build_pass.input), root=config.root), plugins
    )
    output = OutputOptions(
        dir=config.public_dir,
        format=cast(OutputFormat, build_pass.format),
        entry_file_names=build_pass.entry_file_names,
    )
    logger.info("Running build pass '%s' (%s)", build_pass.name, build_pass.format)
    return bundler.write(output)


def build(config: ProjectConfig, pass_names: list[str] | None = None) -> Manifest:
    manifest_plugin = AssetManifestPlugin(config.manifest_name)
    for build_pass in config.select_passes(pass_names):
        run_pass(config, build_pass, manifest_plugin)
    return load_manifest(config.manifest_path)
