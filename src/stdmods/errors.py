from __future__ import annotations


class StdModsError(Exception):
    """Base error for stdmods build, serve and run-time failures."""


class UnknownBuiltinModule(StdModsError, LookupError):
    """A reserved-marker specifier has no entry in the module map."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown built-in module '{name}'")
        self.name = name


class ManifestCorrupt(StdModsError, ValueError):
    """The manifest file exists but is not a flat JSON object of strings."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"Corrupt manifest {path}: {detail}")
        self.path = path
        self.detail = detail


class AccessDenied(StdModsError, PermissionError):
    """A capability-surface operation was denied by the host environment."""


class ConfigError(StdModsError, ValueError):
    """Invalid build configuration."""


class BundleError(StdModsError):
    """The bundler could not resolve or load a module."""
