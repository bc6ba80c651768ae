"""In-memory notification bus with read/unread state.

The bus is process-wide for one running context: created once, closed on
shutdown. It only grows by `publish` and only shrinks by `delete` or
`clear_all`; already-published notifications are never reordered.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import StrEnum

from pyridersbud._constants import DEFAULT_MAX_NOTIFICATIONS
from pyridersbud._listeners import ListenerSet, Unsubscribe
from pyridersbud.models.notification import NotificationEvent

_logger = logging.getLogger(__name__)


class BusUpdateKind(StrEnum):
    PUBLISHED = "published"
    READ = "read"
    DELETED = "deleted"
    CLEARED = "cleared"


@dataclass(frozen=True)
class BusUpdate:
    """What changed on the bus. ``notification`` is ``None`` for bulk changes."""

    kind: BusUpdateKind
    notification: NotificationEvent | None = None


BusListener = Callable[[BusUpdate], None]


class NotificationBus:
    """Retains published notifications and fans changes out to UI listeners.

    Listeners are called synchronously, in registration order, for every
    change. A listener registered for a UI lifetime must be released when
    that UI goes away, either through the returned unsubscribe or by using
    :meth:`subscription`.
    """

    def __init__(self, *, max_retained: int | None = DEFAULT_MAX_NOTIFICATIONS) -> None:
        if max_retained is not None and max_retained <= 0:
            raise ValueError("max_retained must be positive or None")
        self._max_retained = max_retained
        self._events: list[NotificationEvent] = []
        self._listeners: ListenerSet[BusUpdate] = ListenerSet(name="notification bus", logger=_logger)
        self._closed = False

    @property
    def notifications(self) -> tuple[NotificationEvent, ...]:
        """All retained notifications in publish order (oldest first)."""
        return tuple(self._events)

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, notification_id: str) -> NotificationEvent | None:
        for event in self._events:
            if event.id == notification_id:
                return event
        return None

    def publish(self, event: NotificationEvent) -> None:
        if self._closed:
            _logger.debug("Dropping notification %s published after close", event.id)
            return
        self._events.append(event)
        if self._max_retained is not None and len(self._events) > self._max_retained:
            del self._events[: len(self._events) - self._max_retained]
        _logger.debug("Published notification id=%s type=%s recipient=%s", event.id, event.type, event.recipient_id)
        self._listeners.dispatch(BusUpdate(BusUpdateKind.PUBLISHED, event))

    def mark_read(self, notification_id: str) -> bool:
        """Flip ``read`` on exactly one notification. Unknown ids are a no-op."""
        for index, event in enumerate(self._events):
            if event.id != notification_id:
                continue
            if event.read:
                return False
            updated = event.as_read()
            self._events[index] = updated
            self._listeners.dispatch(BusUpdate(BusUpdateKind.READ, updated))
            return True
        return False

    def mark_all_read(self, recipient_key: str | None = None) -> int:
        """Mark every unread notification (optionally only those for *recipient_key*) as read."""
        changed = 0
        for index, event in enumerate(self._events):
            if event.read or (recipient_key is not None and not event.is_for(recipient_key)):
                continue
            updated = event.as_read()
            self._events[index] = updated
            changed += 1
            self._listeners.dispatch(BusUpdate(BusUpdateKind.READ, updated))
        return changed

    def delete(self, notification_id: str) -> bool:
        for index, event in enumerate(self._events):
            if event.id == notification_id:
                del self._events[index]
                self._listeners.dispatch(BusUpdate(BusUpdateKind.DELETED, event))
                return True
        return False

    def clear_all(self) -> None:
        self._events = []
        self._listeners.dispatch(BusUpdate(BusUpdateKind.CLEARED))

    def for_recipient(self, recipient_key: str) -> list[NotificationEvent]:
        """Notifications visible to *recipient_key*, newest first."""
        return [event for event in reversed(self._events) if event.is_for(recipient_key)]

    def unread_count(self, recipient_key: str) -> int:
        return sum(1 for event in self._events if not event.read and event.is_for(recipient_key))

    def subscribe(self, listener: BusListener) -> Unsubscribe:
        return self._listeners.add(listener)

    @contextlib.contextmanager
    def subscription(self, listener: BusListener) -> Iterator[None]:
        """Scoped subscription: *listener* is released when the block exits."""
        unsubscribe = self.subscribe(listener)
        try:
            yield
        finally:
            unsubscribe()

    def close(self) -> None:
        """Tear the bus down: drop listeners and stop accepting notifications."""
        self._closed = True
        self._listeners.clear()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
