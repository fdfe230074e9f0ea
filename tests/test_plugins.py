from __future__ import annotations

import logging
from pathlib import Path

import pytest

from stdmods.bundler import InputOptions, OutputChunk, OutputOptions
from stdmods.errors import UnknownBuiltinModule
from stdmods.importmap import generate_import_map
from stdmods.manifest import load_manifest, write_manifest
from stdmods.module_map import ModuleMap
from stdmods.plugins import AssetManifestPlugin, BuiltinModulePlugin

MODULES = ModuleMap({"std:kv-storage": "src/kv-storage/index.mjs"})


def _chunk(name: str, file_name: str, *, is_entry: bool = True) -> OutputChunk:
    return OutputChunk(
        name=name,
        file_name=file_name,
        code="",
        facade_module_id=f"/src/{name}.mjs",
        is_entry=is_entry,
    )


def test_options_registers_builtin_entries(tmp_path: Path) -> None:
    opts = InputOptions(input={"main": "src/main.mjs"}, root=tmp_path)
    BuiltinModulePlugin(MODULES).options(opts)
    assert opts.input == {
        "main": "src/main.mjs",
        "std~kv-storage": "src/kv-storage/index.mjs",
    }


def test_options_without_code_split(tmp_path: Path) -> None:
    opts = InputOptions(input={"nomodule": "src/main.mjs"}, root=tmp_path)
    BuiltinModulePlugin(MODULES, code_split=False).options(opts)
    assert opts.input == {"nomodule": "src/main.mjs"}


def test_options_dedupes_builtins_by_entry_name(tmp_path: Path) -> None:
    by_name = InputOptions(
        input={"std:kv-storage": "src/kv-storage/index.mjs"}, root=tmp_path
    )
    BuiltinModulePlugin(MODULES).options(by_name)
    assert by_name.input == {"std~kv-storage": "src/kv-storage/index.mjs"}

    by_source = InputOptions(input={"kv": "src/kv-storage/index.mjs"}, root=tmp_path)
    BuiltinModulePlugin(MODULES).options(by_source)
    assert by_source.input == {
        "kv": "src/kv-storage/index.mjs",
        "std~kv-storage": "src/kv-storage/index.mjs",
    }


def test_resolve_id(tmp_path: Path) -> None:
    plugin = BuiltinModulePlugin(MODULES, root=tmp_path)
    expected = str((tmp_path / "src" / "kv-storage" / "index.mjs").resolve())
    assert plugin.resolve_id("std:kv-storage", "/src/main.mjs") == expected
    assert plugin.resolve_id("./util.mjs", "/src/main.mjs") is None
    with pytest.raises(UnknownBuiltinModule):
        plugin.resolve_id("std:unknown-thing", "/src/main.mjs")


def test_manifest_records_entry_chunks(tmp_path: Path) -> None:
    bundle = {
        "kv-hash123.mjs": _chunk("std~kv-storage", "kv-hash123.mjs"),
        "shared-abc.mjs": _chunk("shared", "shared-abc.mjs", is_entry=False),
    }
    AssetManifestPlugin().write_bundle(OutputOptions(dir=tmp_path), bundle)
    manifest = load_manifest(tmp_path / "asset-manifest.json")
    assert manifest == {"std:kv-storage": "/kv-hash123.mjs"}
    assert generate_import_map(manifest) == {
        "imports": {"std:kv-storage": "/kv-hash123.mjs"}
    }


def test_manifest_records_aliases_under_the_shared_url(tmp_path: Path) -> None:
    chunk = _chunk("kv", "kv-1.mjs")
    chunk.aliases.append("std~kv-storage")
    AssetManifestPlugin().write_bundle(OutputOptions(dir=tmp_path), {"kv-1.mjs": chunk})
    assert load_manifest(tmp_path / "asset-manifest.json") == {
        "kv": "/kv-1.mjs",
        "std:kv-storage": "/kv-1.mjs",
    }


def test_manifest_keeps_other_pass_entries(tmp_path: Path) -> None:
    write_manifest(tmp_path / "asset-manifest.json", {"nomodule": "/nomodule-1.js"})
    bundle = {"main-1.mjs": _chunk("main", "main-1.mjs")}
    AssetManifestPlugin().write_bundle(OutputOptions(dir=tmp_path), bundle)
    assert load_manifest(tmp_path / "asset-manifest.json") == {
        "main": "/main-1.mjs",
        "nomodule": "/nomodule-1.js",
    }


def test_manifest_warns_when_a_pass_rewrites_an_entry(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    plugin = AssetManifestPlugin()
    out = OutputOptions(dir=tmp_path)
    plugin.write_bundle(out, {"main-1.mjs": _chunk("main", "main-1.mjs")})
    with caplog.at_level(logging.WARNING, logger="stdmods.plugins"):
        plugin.write_bundle(out, {"main-2.mjs": _chunk("main", "main-2.mjs")})
    assert "Manifest entry 'main' changed" in caplog.text
    assert load_manifest(tmp_path / "asset-manifest.json") == {"main": "/main-2.mjs"}
