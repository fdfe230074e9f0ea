from __future__ import annotations

import json
from typing import Any

import msgpack

CODECS = ("msgpack", "json")

_TUPLE_EXT = 1


def check_codec(codec: str) -> str:
    if codec not in CODECS:
        raise ValueError(f"Unknown codec '{codec}'")
    return codec


def _pack_default(obj: Any) -> Any:
    # strict_types hands tuples and subclasses of the builtin types to us.
    if isinstance(obj, tuple):
        return msgpack.ExtType(_TUPLE_EXT, _pack(list(obj)))
    if isinstance(obj, dict):
        return dict(obj)
    if isinstance(obj, list):
        return list(obj)
    for base in (str, bytes, int, float):
        if isinstance(obj, base):
            return base(obj)
    if hasattr(obj, "tzinfo") and obj.tzinfo is None:
        raise TypeError("Naive datetimes cannot be stored; attach a tzinfo")
    raise TypeError(f"Cannot store values of type {type(obj).__name__}")


def _ext_hook(code: int, data: bytes) -> Any:
    if code == _TUPLE_EXT:
        return tuple(_unpack(data))
    return msgpack.ExtType(code, data)


def _pack(obj: Any) -> bytes:
    return msgpack.packb(
        obj,
        use_bin_type=True,
        datetime=True,
        strict_types=True,
        default=_pack_default,
    )


def _unpack(data: bytes) -> Any:
    return msgpack.unpackb(
        data,
        raw=False,
        strict_map_key=False,
        timestamp=3,
        ext_hook=_ext_hook,
    )


def encode_value(obj: Any, codec: str) -> bytes:
    if codec == "json":
        return json.dumps(obj, separators=(",", ":"), sort_keys=True).encode("utf-8")
    if codec == "msgpack":
        return _pack(obj)
    raise ValueError(f"Unknown codec '{codec}'")


def decode_value(data: bytes, codec: str) -> Any:
    if codec == "json":
        return json.loads(data.decode("utf-8"))
    if codec == "msgpack":
        return _unpack(data)
    raise ValueError(f"Unknown codec '{codec}'")


def encode_key(key: Any) -> str:
    if isinstance(key, bool):
        raise TypeError("Booleans are not valid storage keys")
    if isinstance(key, str):
        return f"s:{key}"
    if isinstance(key, int):
        return f"i:{key}"
    if isinstance(key, float):
        return f"f:{key!r}"
    if isinstance(key, (bytes, bytearray)):
        return f"b:{bytes(key).hex()}"
    raise TypeError(f"Invalid storage key type: {type(key).__name__}")


def decode_key(raw: str) -> Any:
    tag, _, body = raw.partition(":")
    if tag == "s":
        return body
    if tag == "i":
        return int(body)
    if tag == "f":
        return float(body)
    if tag == "b":
        return bytes.fromhex(body)
    raise ValueError(f"Corrupt storage key '{raw}'")
