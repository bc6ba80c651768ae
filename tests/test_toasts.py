from __future__ import annotations

from pyridersbud.models import NotificationEvent, NotificationType
from pyridersbud.notifications.bus import NotificationBus
from pyridersbud.notifications.toasts import ToastQueue


class _FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def _event(event_id: str, recipient: str = "customer-c1", read: bool = False) -> NotificationEvent:
    return NotificationEvent(
        id=event_id,
        type=NotificationType.CHAT,
        title="New Message from Jay",
        message="On my way",
        recipient_id=recipient,
        read=read,
    )


def test_toast_expires_after_duration() -> None:
    bus = NotificationBus()
    clock = _FakeClock()
    toasts = ToastQueue(bus, duration=5.0, clock=clock)

    bus.publish(_event("n1"))
    assert [t.notification.id for t in toasts.active()] == ["n1"]

    clock.now = 104.5
    assert len(toasts.active()) == 1
    clock.now = 105.0
    assert toasts.active() == []


def test_read_or_deleted_notifications_leave_the_queue() -> None:
    bus = NotificationBus()
    toasts = ToastQueue(bus, clock=_FakeClock())
    bus.publish(_event("n1"))
    bus.publish(_event("n2"))

    bus.mark_read("n1")
    bus.delete("n2")

    assert toasts.active() == []


def test_only_unread_and_matching_recipient_are_shown() -> None:
    bus = NotificationBus()
    toasts = ToastQueue(bus, recipient_key="mechanic-m1", clock=_FakeClock())

    bus.publish(_event("n1", "mechanic-m1", read=True))
    bus.publish(_event("n2", "mechanic-m2"))
    bus.publish(_event("n3", "all"))

    assert [t.notification.id for t in toasts.active()] == ["n3"]


def test_dismiss_clear_and_close() -> None:
    bus = NotificationBus()
    toasts = ToastQueue(bus, clock=_FakeClock())
    bus.publish(_event("n1"))
    bus.publish(_event("n2"))

    assert toasts.dismiss("n1") is True
    assert toasts.dismiss("n1") is False
    bus.clear_all()
    assert toasts.active() == []

    toasts.close()
    assert bus.listener_count == 0
    bus.publish(_event("n3"))
    assert toasts.active() == []
