"""Identity-keyed associative store.

Delegates to the host's weak-key mapping when one exists. Only without one
does it fall back to tagging each key object with a hidden attribute.
"""

from __future__ import annotations

import itertools
import secrets
import weakref
from collections.abc import Callable
from types import ModuleType
from typing import Any

_MISSING = object()
_counter = itertools.count(1)


class DelegatingWeakMap:
    def __init__(self, native_factory: Callable[[], Any]) -> None:
        self._store = native_factory()

    def get(self, key: Any, default: Any = None) -> Any:
        try:
            return self._store[key]
        except KeyError:
            return default

    def set(self, key: Any, value: Any) -> DelegatingWeakMap:
        self._store[key] = value
        return self

    def has(self, key: Any) -> bool:
        return key in self._store

    def delete(self, key: Any) -> bool:
        try:
            del self._store[key]
        except KeyError:
            return False
        return True


class TaggedWeakMap:
    """Stores values on the key objects themselves under a hidden attribute."""

    def __init__(self) -> None:
        self._id = f"__weak${next(_counter)}_{secrets.token_hex(8)}"

    def get(self, key: Any, default: Any = None) -> Any:
        return getattr(key, self._id, default)

    def set(self, key: Any, value: Any) -> TaggedWeakMap:
        try:
            setattr(key, self._id, value)
        except (AttributeError, TypeError) as exc:
            raise TypeError(
                f"Invalid value used as weak map key: {type(key).__name__}"
            ) from exc
        return self

    def has(self, key: Any) -> bool:
        return getattr(key, self._id, _MISSING) is not _MISSING

    def delete(self, key: Any) -> bool:
        if not self.has(key):
            return False
        delattr(key, self._id)
        return True


def select_weak_map(host: ModuleType | None = weakref) -> Callable[[], Any]:
    native = getattr(host, "WeakKeyDictionary", None) if host is not None else None
    if native is not None:
        return lambda: DelegatingWeakMap(native)
    return TaggedWeakMap


WeakMap = select_weak_map()
