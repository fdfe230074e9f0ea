"""Project configuration from ``[tool.stdmods]`` in pyproject.toml."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from stdmods.errors import ConfigError
from stdmods.module_map import ModuleMap
from stdmods.plugins import ASSET_MANIFEST_FILENAME

_FORMATS = {"esm", "iife"}


@dataclass(frozen=True)
class BuildPass:
    name: str
    input: dict[str, str]
    format: str = "esm"
    entry_file_names: str = "[name]-[hash].mjs"
    code_split: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BuildPass:
        if not isinstance(data, Mapping):
            raise ConfigError("Build passes must be tables")
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise ConfigError("Every build pass needs a name")
        raw_input = data.get("input")
        if not isinstance(raw_input, Mapping) or not raw_input:
            raise ConfigError(f"Build pass '{name}' needs an input table")
        fmt = data.get("format", "esm")
        if fmt not in _FORMATS:
            raise ConfigError(f"Build pass '{name}' has unknown format '{fmt}'")
        default_pattern = "[name]-[hash].mjs" if fmt == "esm" else "[name]-[hash].js"
        pattern = data.get("entry_file_names", default_pattern)
        if not isinstance(pattern, str) or "[name]" not in pattern:
            raise ConfigError(f"Build pass '{name}' entry_file_names needs [name]")
        code_split = bool(data.get("code_split", fmt == "esm"))
        if code_split and fmt == "iife":
            raise ConfigError(f"Build pass '{name}': iife output cannot code split")
        return cls(
            name=name,
            input={str(k): str(v) for k, v in raw_input.items()},
            format=fmt,
            entry_file_names=pattern,
            code_split=code_split,
        )


DEFAULT_PASSES = (
    BuildPass(name="module", input={"main": "src/main.mjs"}),
    BuildPass(
        name="nomodule",
        input={"nomodule": "src/main.mjs"},
        format="iife",
        entry_file_names="[name]-[hash].js",
        code_split=False,
    ),
)


@dataclass(frozen=True)
class ProjectConfig:
    root: Path
    public_dir: Path
    manifest_name: str = ASSET_MANIFEST_FILENAME
    module_map: ModuleMap = field(default_factory=lambda: ModuleMap.from_config(None))
    passes: tuple[BuildPass, ...] = DEFAULT_PASSES

    @property
    def manifest_path(self) -> Path:
        return self.public_dir / self.manifest_name

    def select_passes(self, names: list[str] | None) -> list[BuildPass]:
        if not names:
            return list(self.passes)
        known = {build_pass.name: build_pass for build_pass in self.passes}
        missing = [name for name in names if name not in known]
        if missing:
            raise ConfigError(f"Unknown build pass: {', '.join(missing)}")
        return [known[name] for name in names]


def _load_toml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        return tomllib.loads(path.read_text())
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc


def load_config(root: Path) -> ProjectConfig:
    pyproject = _load_toml(root / "pyproject.toml")
    tool_cfg = pyproject.get("tool", {}).get("stdmods", {})
    if not isinstance(tool_cfg, dict):
        raise ConfigError("tool.stdmods must be a table")

    public_dir = os.environ.get("STDMODS_PUBLIC_DIR") or tool_cfg.get(
        "public_dir", "public"
    )
    manifest_name = os.environ.get("STDMODS_MANIFEST") or tool_cfg.get(
        "manifest", ASSET_MANIFEST_FILENAME
    )
    if not isinstance(public_dir, str) or not isinstance(manifest_name, str):
        raise ConfigError("public_dir and manifest must be strings")

    raw_passes = tool_cfg.get("passes")
    if raw_passes is None:
        passes = DEFAULT_PASSES
    elif isinstance(raw_passes, list) and raw_passes:
        passes = tuple(BuildPass.from_dict(item) for item in raw_passes)
    else:
        raise ConfigError("tool.stdmods.passes must be a non-empty array of tables")
    names = [build_pass.name for build_pass in passes]
    if len(set(names)) != len(names):
        raise ConfigError("Build pass names must be unique")

    public_path = Path(public_dir)
    if not public_path.is_absolute():
        public_path = root / public_path
    return ProjectConfig(
        root=root,
        public_dir=public_path,
        manifest_name=manifest_name,
        module_map=ModuleMap.from_config(tool_cfg.get("modules")),
        passes=passes,
    )
