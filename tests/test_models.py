"""Tests for Pydantic model parsing with RidersBudBaseModel + RidersBudEnum."""

from __future__ import annotations

import datetime as dt
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from pyridersbud._constants import format_currency
from pyridersbud.models import (
    Actor,
    ActorRole,
    Booking,
    BookingStatus,
    ChatMessage,
    ChatSender,
    LocationFix,
    NotificationEvent,
    NotificationType,
    Reminder,
    Snapshot,
    parse_timestamp,
    recipient_key,
)

# ------------------------------------------------------------------
# RidersBudEnum
# ------------------------------------------------------------------


class TestRidersBudEnum:
    def test_unknown_value_falls_back(self) -> None:
        assert BookingStatus("Awaiting Parts") == BookingStatus.UNKNOWN
        assert ChatSender("admin") == ChatSender.UNKNOWN

    def test_known_values(self) -> None:
        assert BookingStatus("En Route") == BookingStatus.EN_ROUTE
        assert ActorRole("mechanic") == ActorRole.MECHANIC

    def test_str_value(self) -> None:
        assert f"{NotificationType.JOB}" == "job"


# ------------------------------------------------------------------
# Timestamps
# ------------------------------------------------------------------


class TestParseTimestamp:
    def test_epoch_milliseconds(self) -> None:
        assert parse_timestamp(1_700_000_000_000) == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)

    def test_epoch_seconds_and_numeric_string(self) -> None:
        expected = datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)
        assert parse_timestamp(1_700_000_000) == expected
        assert parse_timestamp("1700000000") == expected

    def test_iso_string(self) -> None:
        assert parse_timestamp("2026-03-01T09:30:00Z") == datetime(2026, 3, 1, 9, 30, tzinfo=UTC)

    def test_naive_datetime_is_utc(self) -> None:
        assert parse_timestamp(datetime(2026, 3, 1)) == datetime(2026, 3, 1, tzinfo=UTC)

    def test_none(self) -> None:
        assert parse_timestamp(None) is None


# ------------------------------------------------------------------
# Bookings and snapshots
# ------------------------------------------------------------------


class TestBooking:
    def test_camel_case_record(self) -> None:
        booking = Booking.model_validate(
            {
                "id": "b1",
                "customerName": "Ana",
                "status": "Mechanic Assigned",
                "mechanic": {"id": "m1", "name": "Jay"},
                "service": {"name": "Oil Change", "price": "1500"},
                "vehicle": {"make": "Honda", "plateNumber": "ABC 1234"},
                "isPaid": True,
                "unrelatedField": "ignored",
            }
        )

        assert booking.customer_id is None
        assert booking.status == BookingStatus.MECHANIC_ASSIGNED
        assert booking.service.price == 1500.0
        assert booking.vehicle.plate_number == "ABC 1234"
        assert booking.is_paid is True

    @pytest.mark.parametrize("value", ["true", 1, "yes"])
    def test_is_paid_only_accepts_real_booleans(self, value: object) -> None:
        booking = Booking.model_validate({"id": "b1", "service": {"name": "x"}, "isPaid": value})
        assert booking.is_paid is None

    def test_frozen(self) -> None:
        booking = Booking.model_validate({"id": "b1", "service": {"name": "x"}})
        with pytest.raises(ValidationError):
            booking.status = BookingStatus.COMPLETED  # type: ignore[misc]


class TestSnapshot:
    def test_get_and_index_first_occurrence_wins(self) -> None:
        snapshot = Snapshot.from_bookings(
            [
                {"id": "b1", "status": "Upcoming", "service": {"name": "first"}},
                {"id": "b1", "status": "Completed", "service": {"name": "second"}},
            ]
        )

        assert snapshot.get("b1") is not None
        assert snapshot.get("b1").service.name == "first"  # type: ignore[union-attr]
        assert snapshot.index()["b1"].service.name == "first"
        assert snapshot.get("missing") is None

    def test_equal_content_is_equal(self) -> None:
        records = [{"id": "b1", "service": {"name": "x"}}]
        assert Snapshot.from_bookings(records) == Snapshot.from_bookings(records)


# ------------------------------------------------------------------
# Notifications and actors
# ------------------------------------------------------------------


class TestNotificationEvent:
    def test_defaults(self) -> None:
        event = NotificationEvent(type="booking", title="t", message="m", recipient_id="customer-c1")

        assert event.id.startswith("notif-")
        assert event.read is False
        assert event.timestamp.tzinfo is not None

    def test_is_for(self) -> None:
        direct = NotificationEvent(type="job", title="t", message="m", recipient_id="mechanic-m1")
        broadcast = NotificationEvent(type="job", title="t", message="m", recipient_id="all")

        assert direct.is_for("mechanic-m1")
        assert not direct.is_for("mechanic-m2")
        assert broadcast.is_for("mechanic-m2")

    def test_as_read_returns_copy(self) -> None:
        event = NotificationEvent(type="chat", title="t", message="m", recipient_id="customer-c1")
        read = event.as_read()

        assert read.read is True
        assert event.read is False
        assert read.id == event.id
        assert read.as_read() is read

    def test_storage_uses_camel_case(self) -> None:
        event = NotificationEvent(type="chat", title="t", message="m", recipient_id="customer-c1")
        assert "recipientId" in event.to_storage()


class TestActor:
    def test_recipient_keys(self) -> None:
        assert Actor(role="customer", id="c1").recipient_key == "customer-c1"
        assert recipient_key("mechanic", "m1") == "mechanic-m1"

    def test_role_flags(self) -> None:
        mechanic = Actor(role="mechanic", id="m1")
        assert mechanic.is_mechanic and not mechanic.is_customer


# ------------------------------------------------------------------
# Chat, reminders, location
# ------------------------------------------------------------------


class TestChatMessage:
    def test_round_trip_storage(self) -> None:
        message = ChatMessage(sender="customer", text="hi", timestamp=1_700_000_000_000)
        assert ChatMessage.model_validate(message.to_storage()) == message


class TestReminder:
    def test_days_until(self) -> None:
        reminder = Reminder.model_validate({"id": "r1", "date": "2026-03-04", "serviceName": "Oil Change"})
        assert reminder.days_until(dt.date(2026, 3, 1)) == 3


class TestLocationFix:
    def test_aliases_and_coordinates(self) -> None:
        fix = LocationFix.model_validate({"lat": 14.6, "lon": 121.0, "accuracy": 12})
        assert fix.as_coordinates() == {"lat": 14.6, "lng": 121.0}
        assert LocationFix(latitude=1.0, longitude=2.0).latitude == 1.0


@pytest.mark.parametrize(
    ("amount", "expected"),
    [(1500, "₱1,500"), (1250.5, "₱1,250.50"), (0, "₱0")],
)
def test_format_currency(amount: float, expected: str) -> None:
    assert format_currency(amount) == expected
