"""Polyfill for the ``std:kv-storage`` built-in module."""

from __future__ import annotations

from stdmods_kv.area import StorageArea

storage = StorageArea("default")

__all__ = ["StorageArea", "storage"]
