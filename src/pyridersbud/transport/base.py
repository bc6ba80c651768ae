"""Storage transport interface and shared decoding helpers.

A transport is a durable, namespaced key/value store that broadcasts every
write to all subscribed execution contexts, **including the writer**. Native
cross-context notifications usually reach other contexts only, so every
implementation re-dispatches the change to its own subscribers before
``write`` returns. Callers cannot tell a local write from a remote one.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from pyridersbud._listeners import Unsubscribe
from pyridersbud._redact import redact_for_log

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageChange:
    """Cross-context broadcast payload.

    ``new_value`` is the serialized value, or ``None`` when the key was deleted.
    """

    key: str
    new_value: str | None


ChangeHandler = Callable[[StorageChange], None]


class Transport(Protocol):
    """Structural transport interface used by channels, reminders and chat alerts.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementations (`LocalTransport`, `MqttTransport`) concrete.
    """

    def read(self, key: str) -> str | None:
        """Return the last written value, or ``None`` when absent."""
        ...

    def write(self, key: str, value: str | None) -> None:
        """Persist *value* (``None`` deletes) and broadcast to every context, the writer included."""
        ...

    def subscribe(self, handler: ChangeHandler) -> Unsubscribe:
        """Register a handler for all key changes; returns the matching unsubscribe."""
        ...


def encode_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def decode_json_list(raw: str | None, *, key: str = "", logger: logging.Logger | None = None) -> list[Any]:
    """Decode a stored JSON array.

    Missing values decode to ``[]``. Corrupt values (invalid JSON or a
    non-list document) are logged and also decode to ``[]``; this never raises.
    """
    log = logger or _logger
    if raw is None or raw == "":
        return []
    try:
        decoded = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        log.warning("Discarding corrupt stored value key=%s value=%s", key, redact_for_log(raw, max_string=64))
        return []
    if not isinstance(decoded, list):
        log.warning("Discarding stored value key=%s: expected a JSON array, got %s", key, type(decoded).__name__)
        return []
    return decoded
