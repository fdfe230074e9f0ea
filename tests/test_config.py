from __future__ import annotations

from pathlib import Path

import pytest

from stdmods.config import BuildPass, load_config
from stdmods.errors import ConfigError

PYPROJECT = """
[tool.stdmods]
public_dir = "dist"
manifest = "entry-manifest.json"

[tool.stdmods.modules]
"std:kv-storage" = "lib/kv.mjs"
"std:toast" = "lib/toast.mjs"

[[tool.stdmods.passes]]
name = "modern"
input = { app = "lib/app.mjs" }
"""


def test_defaults_without_pyproject(tmp_path: Path) -> None:
    config = load_config(tmp_path)
    assert config.public_dir == tmp_path / "public"
    assert config.manifest_path == tmp_path / "public" / "asset-manifest.json"
    assert [p.name for p in config.passes] == ["module", "nomodule"]
    assert dict(config.module_map) == {"std:kv-storage": "src/kv-storage/index.mjs"}
    legacy = config.passes[1]
    assert (legacy.format, legacy.code_split) == ("iife", False)


def test_reads_tool_table(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text(PYPROJECT)
    config = load_config(tmp_path)
    assert config.manifest_path == tmp_path / "dist" / "entry-manifest.json"
    assert dict(config.module_map) == {
        "std:kv-storage": "lib/kv.mjs",
        "std:toast": "lib/toast.mjs",
    }
    assert config.passes == (
        BuildPass(name="modern", input={"app": "lib/app.mjs"}),
    )


def test_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "pyproject.toml").write_text(PYPROJECT)
    monkeypatch.setenv("STDMODS_PUBLIC_DIR", "out")
    monkeypatch.setenv("STDMODS_MANIFEST", "m.json")
    assert load_config(tmp_path).manifest_path == tmp_path / "out" / "m.json"


def test_iife_pass_defaults() -> None:
    build_pass = BuildPass.from_dict(
        {"name": "legacy", "input": {"legacy": "main.mjs"}, "format": "iife"}
    )
    assert build_pass.entry_file_names == "[name]-[hash].js"
    assert build_pass.code_split is False


@pytest.mark.parametrize(
    "data",
    [
        {"input": {"main": "main.mjs"}},
        {"name": "x"},
        {"name": "x", "input": {"main": "main.mjs"}, "format": "cjs"},
        {"name": "x", "input": {"main": "main.mjs"}, "entry_file_names": "a.js"},
        {
            "name": "x",
            "input": {"main": "main.mjs"},
            "format": "iife",
            "code_split": True,
        },
    ],
)
def test_invalid_passes(data: dict) -> None:
    with pytest.raises(ConfigError):
        BuildPass.from_dict(data)


def test_invalid_toml_and_tables(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text("[tool.stdmods\n")
    with pytest.raises(ConfigError):
        load_config(tmp_path)
    (tmp_path / "pyproject.toml").write_text('[tool.stdmods.modules]\nkv = "kv.mjs"\n')
    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_select_passes(tmp_path: Path) -> None:
    config = load_config(tmp_path)
    assert [p.name for p in config.select_passes(["nomodule"])] == ["nomodule"]
    with pytest.raises(ConfigError):
        config.select_passes(["missing"])
