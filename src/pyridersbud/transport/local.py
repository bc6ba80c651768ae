"""In-process storage transport.

`LocalBroker` owns the durable key/value mapping (optionally mirrored to a
JSON file) and the set of attached execution contexts. Each `LocalTransport`
is one context: a write persists through the broker, loops back to the
writer's own subscribers, then reaches every other attached context, once each.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pyridersbud._listeners import ListenerSet, Unsubscribe
from pyridersbud._redact import redact_for_log
from pyridersbud.transport.base import ChangeHandler, StorageChange

_logger = logging.getLogger(__name__)


class LocalBroker:
    """Shared durable storage for in-process contexts."""

    def __init__(self, path: str | Path | None = None, *, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _logger
        self._path = Path(path) if path is not None else None
        self._values: dict[str, str] = self._load()
        self._contexts: list[LocalTransport] = []

    def _load(self) -> dict[str, str]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            self._logger.warning("Ignoring unreadable storage file %s", self._path, exc_info=True)
            return {}
        if not isinstance(data, dict):
            self._logger.warning("Ignoring storage file %s: expected a JSON object", self._path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _save(self) -> None:
        if self._path is None:
            return
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            tmp.write_text(json.dumps(self._values, ensure_ascii=False), encoding="utf-8")
            tmp.replace(self._path)
        except OSError:
            self._logger.warning("Could not persist storage file %s", self._path, exc_info=True)

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def put(self, key: str, value: str | None) -> None:
        if value is None:
            self._values.pop(key, None)
        else:
            self._values[key] = value
        self._save()

    def attach(self, context: LocalTransport) -> None:
        if context not in self._contexts:
            self._contexts.append(context)

    def detach(self, context: LocalTransport) -> None:
        self._contexts = [ctx for ctx in self._contexts if ctx is not context]

    def broadcast(self, change: StorageChange, *, origin: LocalTransport) -> None:
        """Deliver *change* to every attached context except *origin*."""
        for context in list(self._contexts):
            if context is not origin:
                context._deliver(change)  # noqa: SLF001

    def context(self, name: str = "") -> LocalTransport:
        """Create and attach a new execution context."""
        return LocalTransport(self, name=name)


class LocalTransport:
    """One execution context attached to a `LocalBroker`."""

    def __init__(self, broker: LocalBroker | None = None, *, name: str = "") -> None:
        self._broker = broker if broker is not None else LocalBroker()
        self._name = name or f"ctx-{id(self):x}"
        self._subscribers: ListenerSet[StorageChange] = ListenerSet(name=f"transport[{self._name}]", logger=_logger)
        self._closed = False
        self._broker.attach(self)

    @property
    def broker(self) -> LocalBroker:
        return self._broker

    @property
    def name(self) -> str:
        return self._name

    def read(self, key: str) -> str | None:
        return self._broker.get(key)

    def write(self, key: str, value: str | None) -> None:
        _logger.debug("[%s] write key=%s value=%s", self._name, key, redact_for_log(value, max_string=128))
        self._broker.put(key, value)
        change = StorageChange(key=key, new_value=value)
        # Same-context loopback first, so it has run by the time write returns.
        self._deliver(change)
        self._broker.broadcast(change, origin=self)

    def subscribe(self, handler: ChangeHandler) -> Unsubscribe:
        return self._subscribers.add(handler)

    def close(self) -> None:
        """Detach from the broker and drop all subscribers."""
        if self._closed:
            return
        self._closed = True
        self._broker.detach(self)
        self._subscribers.clear()

    def _deliver(self, change: StorageChange) -> None:
        if self._closed:
            return
        self._subscribers.dispatch(change)
