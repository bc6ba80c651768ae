"""Ordered listener registry shared by the transport and the notification bus."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")

Unsubscribe = Callable[[], None]


class ListenerSet(Generic[T]):
    """Synchronous fan-out to registered callbacks, in registration order.

    A listener that raises is logged and skipped; the remaining listeners still
    receive the item. Registering the same callable twice yields two
    independent registrations, each with its own unsubscribe.
    """

    def __init__(self, *, name: str, logger: logging.Logger | None = None) -> None:
        self._name = name
        self._logger = logger or logging.getLogger(__name__)
        self._entries: list[tuple[int, Callable[[T], None]]] = []
        self._next_token = 0

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, listener: Callable[[T], None]) -> Unsubscribe:
        token = self._next_token
        self._next_token += 1
        self._entries.append((token, listener))

        def _remove() -> None:
            self._entries = [entry for entry in self._entries if entry[0] != token]

        return _remove

    def clear(self) -> None:
        self._entries = []

    def dispatch(self, item: T) -> None:
        # Iterate over a copy so listeners may unsubscribe while being called.
        for _token, listener in list(self._entries):
            try:
                listener(item)
            except Exception:
                self._logger.warning("%s listener failed", self._name, exc_info=True)
