"""Build manifest store: logical entry name -> served URL path.

Independent build passes share one manifest file, so every write merges with
what is already on disk. Concurrent writers are not supported.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path

from stdmods.errors import ManifestCorrupt

Manifest = dict[str, str]

logger = logging.getLogger(__name__)


def merge(existing: Mapping[str, str], incoming: Mapping[str, str]) -> Manifest:
    merged = dict(existing)
    merged.update(incoming)
    return merged


def changed_keys(existing: Mapping[str, str], incoming: Mapping[str, str]) -> list[str]:
    return sorted(
        name
        for name, url in incoming.items()
        if name in existing and existing[name] != url
    )


def _validate(path: Path, data: object) -> Manifest:
    if not isinstance(data, dict):
        raise ManifestCorrupt(str(path), "top-level value must be an object")
    for name, url in data.items():
        if not isinstance(url, str):
            raise ManifestCorrupt(str(path), f"value for '{name}' must be a string")
    return dict(data)


def load_manifest(path: Path) -> Manifest:
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        return {}
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ManifestCorrupt(str(path), str(exc)) from exc
    return _validate(path, data)


def write_manifest(path: Path, manifest: Mapping[str, str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(dict(manifest), indent=2, sort_keys=True) + "\n"
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def update_manifest(path: Path, incoming: Mapping[str, str]) -> Manifest:
    existing = load_manifest(path)
    merged = merge(existing, incoming)
    write_manifest(path, merged)
    logger.debug("Merged %d entries into %s", len(incoming), path)
    return merged


def clear_manifest(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
