"""Run-time selection between host-provided built-ins and polyfills.

The host registers native built-in modules in a runtime-owned registry on
``builtins``. ``ModuleLoader`` plays the part of the host module loader: it
picks the variant once per specifier, and application code only ever sees the
module object it returns.
"""

from __future__ import annotations

import builtins as _builtins
import importlib
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from stdmods.errors import UnknownBuiltinModule
from stdmods.importmap import ImportMap, validate_import_map
from stdmods.specifiers import Virtual, classify

_REGISTRY_NAME = "_stdmods_builtins"
NATIVE_PROBE = "backing_store"

POLYFILLS: dict[str, str] = {
    "std:kv-storage": "stdmods_kv",
}

Fetch = Callable[[str, str], Any]


@dataclass(frozen=True)
class Native:
    name: str
    module: Any


@dataclass(frozen=True)
class Polyfill:
    name: str
    url: str
    module: Any


Variant = Native | Polyfill


def host_builtins() -> dict[str, Any] | None:
    reg = getattr(_builtins, _REGISTRY_NAME, None)
    if isinstance(reg, dict):
        return reg
    return None


def load_native(name: str, host: Mapping[str, Any] | None = None) -> Any | None:
    reg = host if host is not None else host_builtins()
    if reg is None:
        return None
    return reg.get(name)


def import_polyfill(name: str, url: str) -> Any:
    module_name = POLYFILLS.get(name)
    if module_name is None:
        raise UnknownBuiltinModule(name)
    return importlib.import_module(module_name)


class ModuleLoader:
    def __init__(
        self,
        import_map: ImportMap,
        fetch: Fetch | None = None,
        host: Mapping[str, Any] | None = None,
    ) -> None:
        self._imports = dict(validate_import_map(import_map)["imports"])
        self._fetch = fetch or import_polyfill
        self._host = host
        self._loaded: dict[str, Variant] = {}

    def load(self, specifier: str) -> Variant:
        kind = classify(specifier)
        if not isinstance(kind, Virtual):
            raise ValueError(f"'{specifier}' is not a built-in module specifier")
        variant = self._loaded.get(kind.name)
        if variant is not None:
            return variant
        native = load_native(kind.name, self._host)
        if native is not None:
            variant = Native(kind.name, native)
        else:
            url = self._imports.get(kind.name)
            if url is None:
                raise UnknownBuiltinModule(kind.name)
            variant = Polyfill(kind.name, url, self._fetch(kind.name, url))
        self._loaded[kind.name] = variant
        return variant

    def import_module(self, specifier: str) -> Any:
        return self.load(specifier).module


def describe_variant(obj: Any) -> str:
    """Diagnostics only: report which implementation backs ``obj``."""
    if hasattr(type(obj), NATIVE_PROBE):
        return "built-in module"
    return "polyfill"
