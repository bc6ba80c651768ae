from __future__ import annotations

import pytest

from pyridersbud.models import NotificationEvent, NotificationType
from pyridersbud.notifications.bus import BusUpdate, BusUpdateKind, NotificationBus


def _event(event_id: str, recipient: str = "customer-c1", **kwargs: object) -> NotificationEvent:
    return NotificationEvent(
        id=event_id,
        type=kwargs.pop("type", NotificationType.BOOKING),
        title=kwargs.pop("title", "Mechanic En Route!"),
        message=kwargs.pop("message", "Jay is on the way."),
        recipient_id=recipient,
        **kwargs,
    )


def test_publish_preserves_order_and_notifies_listeners() -> None:
    bus = NotificationBus()
    updates: list[BusUpdate] = []
    bus.subscribe(updates.append)

    bus.publish(_event("n1"))
    bus.publish(_event("n2"))

    assert [e.id for e in bus.notifications] == ["n1", "n2"]
    assert [(u.kind, u.notification.id) for u in updates if u.notification] == [
        (BusUpdateKind.PUBLISHED, "n1"),
        (BusUpdateKind.PUBLISHED, "n2"),
    ]


def test_mark_read_flips_only_one() -> None:
    bus = NotificationBus()
    bus.publish(_event("n1"))
    bus.publish(_event("n2"))

    assert bus.mark_read("n1") is True
    assert bus.mark_read("n1") is False
    assert bus.mark_read("missing") is False

    assert [(e.id, e.read) for e in bus.notifications] == [("n1", True), ("n2", False)]


def test_recipient_views_include_broadcasts() -> None:
    bus = NotificationBus()
    bus.publish(_event("n1", "mechanic-m1"))
    bus.publish(_event("n2", "all", type=NotificationType.JOB))
    bus.publish(_event("n3", "mechanic-m2"))

    assert [e.id for e in bus.for_recipient("mechanic-m1")] == ["n2", "n1"]
    assert bus.unread_count("mechanic-m1") == 2
    assert bus.unread_count("mechanic-m2") == 2


def test_mark_all_read_scoped_to_recipient() -> None:
    bus = NotificationBus()
    bus.publish(_event("n1", "customer-c1"))
    bus.publish(_event("n2", "customer-c2"))

    assert bus.mark_all_read("customer-c1") == 1
    assert bus.unread_count("customer-c2") == 1
    assert bus.mark_all_read() == 1


def test_delete_and_clear() -> None:
    bus = NotificationBus()
    updates: list[BusUpdate] = []
    bus.subscribe(updates.append)
    bus.publish(_event("n1"))
    bus.publish(_event("n2"))

    assert bus.delete("n1") is True
    assert bus.delete("n1") is False
    assert [e.id for e in bus.notifications] == ["n2"]

    bus.clear_all()
    assert bus.notifications == ()
    assert updates[-1] == BusUpdate(BusUpdateKind.CLEARED)


def test_retention_cap_drops_oldest() -> None:
    bus = NotificationBus(max_retained=2)
    for i in range(4):
        bus.publish(_event(f"n{i}"))

    assert [e.id for e in bus.notifications] == ["n2", "n3"]


def test_invalid_retention_cap() -> None:
    with pytest.raises(ValueError):
        NotificationBus(max_retained=0)


def test_scoped_subscription_is_released() -> None:
    bus = NotificationBus()
    updates: list[BusUpdate] = []

    with bus.subscription(updates.append):
        assert bus.listener_count == 1
        bus.publish(_event("n1"))
    bus.publish(_event("n2"))

    assert bus.listener_count == 0
    assert len(updates) == 1


def test_failing_listener_does_not_stop_publish() -> None:
    bus = NotificationBus()
    updates: list[BusUpdate] = []

    def _boom(_update: BusUpdate) -> None:
        raise RuntimeError("ui crashed")

    bus.subscribe(_boom)
    bus.subscribe(updates.append)
    bus.publish(_event("n1"))

    assert len(updates) == 1
    assert bus.get("n1") is not None


def test_closed_bus_drops_publishes_and_listeners() -> None:
    bus = NotificationBus()
    updates: list[BusUpdate] = []
    bus.subscribe(updates.append)

    bus.close()
    bus.publish(_event("n1"))

    assert bus.closed
    assert bus.notifications == ()
    assert updates == []


def test_event_requires_title_and_message() -> None:
    with pytest.raises(ValueError):
        _event("n1", title="  ")
