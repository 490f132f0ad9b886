"""Lookup key derivation.

Two arguments with equal lookup keys are the same logical request:

- a registered serializer is applied first;
- a ``str`` is used as-is;
- anything else is rendered as canonical JSON (sorted keys) with orjson.

Note that ``42`` and ``"42"`` therefore share the key ``"42"``.
"""

from __future__ import annotations

from typing import Any, Callable

import orjson
from pydantic import BaseModel

from single_user_cache.errors import UnserializableArgumentError

ORJSON_OPTIONS = orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS | orjson.OPT_UTC_Z

SerializeFn = Callable[[Any], Any]


def _default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json", by_alias=True)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=stable_stringify)
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")


def stable_stringify(value: Any) -> str:
    """Return a deterministic string rendering of *value*."""
    # orjson only encodes 64-bit integers
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    try:
        return orjson.dumps(value, default=_default, option=ORJSON_OPTIONS).decode()
    except orjson.JSONEncodeError as e:
        raise UnserializableArgumentError(
            f"Cannot derive a lookup key from {type(value).__name__}: {e}. "
            "Register a serialize function for this operation."
        ) from e


def lookup_key(arg: Any, serialize: SerializeFn | None = None) -> str:
    """Derive the deduplication key for *arg*."""
    key = serialize(arg) if serialize is not None else arg
    if isinstance(key, str):
        return key
    return stable_stringify(key)
