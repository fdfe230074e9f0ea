"""SQLite-backed ``StorageArea`` with the async kv-storage surface.

Every failure, argument validation included, surfaces when the returned
coroutine is awaited. Denied storage access raises ``AccessDenied``.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import os
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import quote

from stdmods import capabilities
from stdmods.errors import AccessDenied
from stdmods_kv.codec import (
    check_codec,
    decode_key,
    decode_value,
    encode_key,
    encode_value,
)
from stdmods_kv.weak_map import WeakMap

STORAGE_CAPABILITY = "storage"
STORAGE_DIR_ENV = "STDMODS_KV_STORAGE_DIR"

logger = logging.getLogger(__name__)

_PRIVATE = WeakMap()
_DENIED_ERRNOS = {errno.EACCES, errno.EPERM, errno.EROFS}
_DENIED_MARKERS = ("readonly", "unable to open", "permission", "access")


def default_storage_dir() -> Path:
    raw = os.environ.get(STORAGE_DIR_ENV)
    if raw:
        path = Path(raw).expanduser()
        if not path.is_absolute():
            return (Path.cwd() / path).resolve()
        return path
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        path = Path(xdg).expanduser()
        if not path.is_absolute():
            path = (Path.cwd() / path).resolve()
        return path / "stdmods"
    return Path.home() / ".local" / "share" / "stdmods"


@dataclass(frozen=True)
class _AreaState:
    database: str
    path: Path
    codec: str


def _denied(state: _AreaState, exc: BaseException) -> AccessDenied:
    return AccessDenied(f"Storage access denied for '{state.database}': {exc}")


@contextmanager
def _database(state: _AreaState) -> Iterator[sqlite3.Connection]:
    try:
        state.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(state.path, timeout=5.0)
    except sqlite3.OperationalError as exc:
        raise _denied(state, exc) from exc
    except OSError as exc:
        if exc.errno in _DENIED_ERRNOS or isinstance(exc, PermissionError):
            raise _denied(state, exc) from exc
        raise
    try:
        with conn:
            conn.execute(
                "CREATE TABLE IF NOT EXISTS store "
                "(key TEXT PRIMARY KEY, value BLOB NOT NULL)"
            )
            yield conn
    except sqlite3.OperationalError as exc:
        message = str(exc).lower()
        if any(marker in message for marker in _DENIED_MARKERS):
            raise _denied(state, exc) from exc
        raise
    finally:
        conn.close()


def _read(state: _AreaState, raw_key: str) -> bytes | None:
    with _database(state) as conn:
        row = conn.execute(
            "SELECT value FROM store WHERE key = ?", (raw_key,)
        ).fetchone()
    return None if row is None else bytes(row[0])


def _write(state: _AreaState, raw_key: str, payload: bytes) -> None:
    with _database(state) as conn:
        conn.execute(
            "INSERT OR REPLACE INTO store (key, value) VALUES (?, ?)",
            (raw_key, payload),
        )


def _remove(state: _AreaState, raw_key: str) -> None:
    with _database(state) as conn:
        conn.execute("DELETE FROM store WHERE key = ?", (raw_key,))


def _clear(state: _AreaState) -> None:
    with _database(state) as conn:
        conn.execute("DELETE FROM store")


def _rows(state: _AreaState) -> list[tuple[str, bytes]]:
    with _database(state) as conn:
        rows = conn.execute("SELECT key, value FROM store ORDER BY key").fetchall()
    return [(str(key), bytes(value)) for key, value in rows]


class StorageArea:
    def __init__(
        self,
        name: str,
        *,
        directory: Path | None = None,
        codec: str = "msgpack",
    ) -> None:
        if not isinstance(name, str) or not name:
            raise TypeError("StorageArea name must be a non-empty string")
        database = f"kv-storage:{name}"
        base = directory if directory is not None else default_storage_dir()
        path = base / f"{quote(database, safe='')}.sqlite3"
        _PRIVATE.set(self, _AreaState(database, path, check_codec(codec)))
        self.name = name

    def __repr__(self) -> str:
        return f"StorageArea({self.name!r})"

    def _state(self) -> _AreaState:
        state = _PRIVATE.get(self)
        if state is None:
            raise TypeError("Illegal invocation: not an initialized StorageArea")
        capabilities.require(STORAGE_CAPABILITY)
        return state

    async def get(self, key: Any) -> Any:
        raw_key = encode_key(key)
        state = self._state()
        payload = await asyncio.to_thread(_read, state, raw_key)
        if payload is None:
            return None
        return decode_value(payload, state.codec)

    async def set(self, key: Any, value: Any) -> None:
        raw_key = encode_key(key)
        state = self._state()
        if value is None:
            await asyncio.to_thread(_remove, state, raw_key)
            return
        payload = encode_value(value, state.codec)
        await asyncio.to_thread(_write, state, raw_key, payload)
        logger.debug("Stored %s in %s", raw_key, state.database)

    async def delete(self, key: Any) -> None:
        raw_key = encode_key(key)
        state = self._state()
        await asyncio.to_thread(_remove, state, raw_key)

    async def clear(self) -> None:
        state = self._state()
        await asyncio.to_thread(_clear, state)

    async def keys(self) -> list[Any]:
        state = self._state()
        rows = await asyncio.to_thread(_rows, state)
        return [decode_key(key) for key, _ in rows]

    async def values(self) -> list[Any]:
        state = self._state()
        rows = await asyncio.to_thread(_rows, state)
        return [decode_value(value, state.codec) for _, value in rows]

    async def entries(self) -> list[tuple[Any, Any]]:
        state = self._state()
        rows = await asyncio.to_thread(_rows, state)
        return [
            (decode_key(key), decode_value(value, state.codec)) for key, value in rows
        ]
