"""stdmods: built-in module virtualization for bundled web apps."""

from __future__ import annotations

from stdmods.errors import (
    AccessDenied,
    BundleError,
    ConfigError,
    ManifestCorrupt,
    StdModsError,
    UnknownBuiltinModule,
)
from stdmods.importmap import generate_import_map
from stdmods.manifest import merge
from stdmods.module_map import ModuleMap
from stdmods.specifiers import MARKER, classify

__all__ = [
    "AccessDenied",
    "BundleError",
    "ConfigError",
    "MARKER",
    "ManifestCorrupt",
    "ModuleMap",
    "StdModsError",
    "UnknownBuiltinModule",
    "classify",
    "generate_import_map",
    "merge",
]
