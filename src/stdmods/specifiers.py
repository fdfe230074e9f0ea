"""Classification of import specifiers and reversible entry naming."""

from __future__ import annotations

from dataclasses import dataclass

from stdmods.errors import ConfigError

MARKER = "std:"
SEPARATOR = ":"
ENTRY_TOKEN = "~"


@dataclass(frozen=True)
class Virtual:
    name: str


@dataclass(frozen=True)
class Ordinary:
    specifier: str


Specifier = Virtual | Ordinary


def classify(specifier: str) -> Specifier:
    if specifier.startswith(MARKER):
        return Virtual(specifier)
    return Ordinary(specifier)


def is_virtual(name: str) -> bool:
    return isinstance(classify(name), Virtual)


def check_entry_name(name: str) -> str:
    if not name:
        raise ConfigError("Entry names must be non-empty")
    if ENTRY_TOKEN in name:
        raise ConfigError(
            f"Entry name '{name}' must not contain the reserved token '{ENTRY_TOKEN}'"
        )
    return name


def encode_entry_name(name: str) -> str:
    """Make ``name`` safe for chunk file names and URLs.

    ``decode_entry_name`` is the exact inverse for any name accepted by
    ``check_entry_name``.
    """
    return check_entry_name(name).replace(SEPARATOR, ENTRY_TOKEN)


def decode_entry_name(entry: str) -> str:
    return entry.replace(ENTRY_TOKEN, SEPARATOR)
