"""Import map generation from the build manifest."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from stdmods.manifest import load_manifest
from stdmods.specifiers import is_virtual

ImportMap = dict[str, dict[str, str]]


def generate_import_map(manifest: Mapping[str, str]) -> ImportMap:
    imports = {name: url for name, url in manifest.items() if is_virtual(name)}
    return {"imports": imports}


def validate_import_map(value: Any) -> ImportMap:
    if not isinstance(value, dict) or set(value) != {"imports"}:
        raise ValueError("import map must be an object with a single 'imports' field")
    imports = value["imports"]
    if not isinstance(imports, dict):
        raise ValueError("import map 'imports' must be an object")
    for specifier, url in imports.items():
        if not isinstance(specifier, str) or not specifier:
            raise ValueError("import map specifiers must be non-empty strings")
        if not isinstance(url, str):
            raise ValueError(f"import map address for '{specifier}' must be a string")
    return value


def render_import_map(import_map: ImportMap) -> str:
    return json.dumps(validate_import_map(import_map), indent=2)


def load_import_map(manifest_path: Path) -> ImportMap:
    return generate_import_map(load_manifest(manifest_path))
