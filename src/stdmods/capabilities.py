"""Capability policy for host access from capability-surface operations.

Unrestricted by default. Setting ``STDMODS_CAPABILITIES`` (even to an empty
string) switches the process into restricted mode where only the listed
capabilities are granted, the way a private browsing window refuses storage.
"""

from __future__ import annotations

import os

from stdmods.errors import AccessDenied

CAPS_ENV = "STDMODS_CAPABILITIES"
TRUSTED_ENV = "STDMODS_TRUSTED"


def _parse_caps(raw: str) -> set[str]:
    caps: set[str] = set()
    for part in raw.split(","):
        stripped = part.strip()
        if stripped:
            caps.add(stripped)
    return caps


_CAPS_CACHE: set[str] | None = None
_CAPS_RAW: str | None = None


def _caps_cache() -> set[str]:
    global _CAPS_CACHE, _CAPS_RAW
    raw = os.environ.get(CAPS_ENV, "")
    if _CAPS_CACHE is None or raw != _CAPS_RAW:
        _CAPS_RAW = raw
        _CAPS_CACHE = _parse_caps(raw)
    return _CAPS_CACHE


def restricted() -> bool:
    return CAPS_ENV in os.environ


def trusted() -> bool:
    raw = os.environ.get(TRUSTED_ENV, "")
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def capabilities() -> set[str]:
    return set(_caps_cache())


def has(capability: str) -> bool:
    if trusted() or not restricted():
        return True
    return capability in _caps_cache()


def require(capability: str) -> None:
    if not has(capability):
        raise AccessDenied(f"Missing capability '{capability}'")
