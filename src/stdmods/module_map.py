"""Static mapping of reserved-marker names to source locators."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from stdmods.errors import ConfigError, UnknownBuiltinModule
from stdmods.specifiers import MARKER, check_entry_name, is_virtual

DEFAULT_MODULES: dict[str, str] = {
    "std:kv-storage": "src/kv-storage/index.mjs",
}


class ModuleMap(Mapping[str, str]):
    def __init__(self, modules: Mapping[str, str] | None = None) -> None:
        entries: dict[str, str] = {}
        for name, locator in (modules or {}).items():
            if not isinstance(name, str) or not is_virtual(name):
                raise ConfigError(f"Module map key {name!r} must start with '{MARKER}'")
            check_entry_name(name)
            if not isinstance(locator, str) or not locator.strip():
                raise ConfigError(f"Module map entry '{name}' needs a source locator")
            entries[name] = locator
        self._modules = MappingProxyType(entries)

    @classmethod
    def from_config(cls, raw: Any) -> ModuleMap:
        if raw is None:
            return cls(DEFAULT_MODULES)
        if not isinstance(raw, Mapping):
            raise ConfigError("tool.stdmods.modules must be a table")
        return cls(raw)

    def __getitem__(self, name: str) -> str:
        return self._modules[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._modules)

    def __len__(self) -> int:
        return len(self._modules)

    def __repr__(self) -> str:
        return f"ModuleMap({dict(self._modules)!r})"

    def lookup(self, name: str) -> str:
        locator = self._modules.get(name)
        if locator is None:
            raise UnknownBuiltinModule(name)
        return locator
