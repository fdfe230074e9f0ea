"""Bundler hooks for built-in modules and the shared asset manifest."""

from __future__ import annotations

import logging
from pathlib import Path

from stdmods.bundler import InputOptions, OutputChunk, OutputOptions, Plugin
from stdmods.manifest import Manifest, changed_keys, update_manifest
from stdmods.module_map import ModuleMap
from stdmods.specifiers import (
    Virtual,
    classify,
    decode_entry_name,
    encode_entry_name,
)

ASSET_MANIFEST_FILENAME = "asset-manifest.json"

logger = logging.getLogger(__name__)


class BuiltinModulePlugin(Plugin):
    """Redirect ``std:`` imports to their sources and emit each as its own chunk.

    With ``code_split`` off (legacy output formats) the modules are still
    resolved but get inlined into whatever imports them.
    """

    name = "builtin-modules"

    def __init__(
        self,
        module_map: ModuleMap,
        *,
        code_split: bool = True,
        root: Path | None = None,
    ) -> None:
        self.module_map = module_map
        self.code_split = code_split
        self.root = root

    def options(self, input_options: InputOptions) -> None:
        input_options.input = {
            encode_entry_name(name): locator
            for name, locator in input_options.input.items()
        }
        if self.root is None:
            self.root = input_options.root
        if not self.code_split:
            return
        declared = {decode_entry_name(name) for name in input_options.input}
        for name, locator in self.module_map.items():
            if name in declared:
                continue
            input_options.input[encode_entry_name(name)] = locator

    def resolve_id(self, importee: str, importer: str | None) -> str | None:
        kind = classify(importee)
        if not isinstance(kind, Virtual):
            return None
        return self.resolve_virtual(kind.name)

    def resolve_virtual(self, name: str) -> str:
        locator = self.module_map.lookup(name)
        root = self.root if self.root is not None else Path.cwd()
        return str((root / locator).resolve())


class AssetManifestPlugin(Plugin):
    """Merge every written entry chunk into the manifest after a pass.

    Entries that share a chunk with another entry are recorded under the same
    URL.

    Share one instance across the passes of a build invocation to get a
    warning when a later pass rewrites a URL an earlier pass recorded.
    """

    name = "asset-manifest"

    def __init__(self, manifest_name: str = ASSET_MANIFEST_FILENAME) -> None:
        self.manifest_name = manifest_name
        self.written: Manifest = {}

    def entries(self, bundle: dict[str, OutputChunk]) -> Manifest:
        manifest: Manifest = {}
        for file_name, chunk in bundle.items():
            if not chunk.is_entry:
                continue
            for name in [chunk.name, *chunk.aliases]:
                manifest[decode_entry_name(name)] = f"/{file_name}"
        return manifest

    def write_bundle(
        self, output_options: OutputOptions, bundle: dict[str, OutputChunk]
    ) -> None:
        incoming = self.entries(bundle)
        for name in changed_keys(self.written, incoming):
            logger.warning(
                "Manifest entry '%s' changed from %s to %s in the same build",
                name,
                self.written[name],
                incoming[name],
            )
        self.written.update(incoming)
        update_manifest(output_options.dir / self.manifest_name, incoming)
