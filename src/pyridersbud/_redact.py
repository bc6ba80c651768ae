"""Redaction for DEBUG logs.

Store requests carry a bearer API key, the broker config carries a password,
and storage values can be whole chat histories. `redact_for_log` masks the
secrets and shortens long text before anything reaches a log line.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

_MASK = "<redacted>"
_MAX_DEPTH = 20

_SECRET_KEYS: frozenset[str] = frozenset(
    {
        "apikey",
        "api_key",
        "store_api_key",
        "authorization",
        "password",
        "mqtt_password",
        "token",
        "accesstoken",
        "refreshtoken",
        "cookie",
    }
)


def _is_secret(key: object) -> bool:
    return str(key).lower() in _SECRET_KEYS


def _shorten(text: str, limit: int) -> str:
    return text if len(text) <= limit else f"{text[:limit]}…<truncated>"


def redact_for_log(value: Any, *, max_string: int = 256, _depth: int = 0) -> Any:
    """Return a log-safe copy of *value*.

    Mappings have secret keys masked, strings are cut to *max_string*
    characters, and pydantic models or dataclasses are logged as their
    field dicts.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"

    def _child(item: Any) -> Any:
        return redact_for_log(item, max_string=max_string, _depth=_depth + 1)

    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return _shorten(value, max_string)
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, BaseModel):
        return _child(value.model_dump(mode="json"))
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _child(dataclasses.asdict(value))
    if isinstance(value, Mapping):
        return {str(k): _MASK if _is_secret(k) else _child(v) for k, v in value.items()}
    if isinstance(value, Sequence):
        return [_child(item) for item in value]
    return repr(value)
