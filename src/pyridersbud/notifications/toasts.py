"""Transient toast lifecycle on top of the notification bus."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from pyridersbud._constants import DEFAULT_TOAST_DURATION_S
from pyridersbud.models.notification import NotificationEvent
from pyridersbud.notifications.bus import BusUpdate, BusUpdateKind, NotificationBus


@dataclass(frozen=True)
class Toast:
    notification: NotificationEvent
    shown_at: float
    expires_at: float


class ToastQueue:
    """Shows each new unread notification once, for a fixed duration.

    A notification becomes a toast the first time it is published unread.
    Toasts leave the queue when they expire, are dismissed, or their
    notification is read or deleted.
    """

    def __init__(
        self,
        bus: NotificationBus,
        *,
        recipient_key: str | None = None,
        duration: float = DEFAULT_TOAST_DURATION_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._recipient_key = recipient_key
        self._duration = duration
        self._clock = clock
        self._active: dict[str, Toast] = {}
        self._shown: set[str] = set()
        self._unsubscribe = bus.subscribe(self._on_update)

    def _on_update(self, update: BusUpdate) -> None:
        notification = update.notification
        if update.kind == BusUpdateKind.CLEARED:
            self._active.clear()
            return
        if notification is None:
            return
        if update.kind in (BusUpdateKind.READ, BusUpdateKind.DELETED):
            self._active.pop(notification.id, None)
            return
        if notification.read or notification.id in self._shown:
            return
        if self._recipient_key is not None and not notification.is_for(self._recipient_key):
            return
        now = self._clock()
        self._shown.add(notification.id)
        self._active[notification.id] = Toast(notification=notification, shown_at=now, expires_at=now + self._duration)

    def active(self) -> list[Toast]:
        """Currently visible toasts in arrival order; expired ones are pruned."""
        now = self._clock()
        for toast_id in [tid for tid, toast in self._active.items() if toast.expires_at <= now]:
            del self._active[toast_id]
        return list(self._active.values())

    def dismiss(self, notification_id: str) -> bool:
        return self._active.pop(notification_id, None) is not None

    def close(self) -> None:
        self._unsubscribe()
        self._active.clear()
