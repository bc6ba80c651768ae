"""Booking snapshot models."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import Field, field_validator

from pyridersbud.models._base import RidersBudBaseModel, RidersBudEnum


class BookingStatus(RidersBudEnum):
    """Lifecycle status of a booking, as written by the store."""

    UPCOMING = "Upcoming"
    BOOKING_CONFIRMED = "Booking Confirmed"
    MECHANIC_ASSIGNED = "Mechanic Assigned"
    EN_ROUTE = "En Route"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    RESCHEDULE_REQUESTED = "Reschedule Requested"
    UNKNOWN = "Unknown"


class MechanicRef(RidersBudBaseModel):
    """The mechanic assigned to a booking."""

    id: str
    name: str = ""


class ServiceInfo(RidersBudBaseModel):
    """Service descriptor attached to a booking."""

    id: str | None = None
    name: str
    price: float = 0.0


class VehicleInfo(RidersBudBaseModel):
    """Vehicle descriptor attached to a booking."""

    make: str = ""
    model: str = ""
    year: int | None = None
    plate_number: str | None = None


class Booking(RidersBudBaseModel):
    """A single booking as seen in one snapshot.

    Parameters
    ----------
    id : str
        Unique booking id.
    customer_id : str or None
        Owning customer id, when the store provides it.
    customer_name : str
        Owning customer display name. Used for ownership when
        ``customer_id`` is absent.
    status : BookingStatus
        Current status; unmapped values become ``BookingStatus.UNKNOWN``.
    mechanic : MechanicRef or None
        Assigned mechanic, if any.
    service : ServiceInfo
        Booked service (name and price).
    vehicle : VehicleInfo
        Vehicle being serviced.
    is_paid : bool or None
        Payment flag. Only an exact ``True`` counts as paid.
    """

    id: str
    customer_id: str | None = None
    customer_name: str = ""
    status: BookingStatus = BookingStatus.UPCOMING
    mechanic: MechanicRef | None = None
    service: ServiceInfo
    vehicle: VehicleInfo = Field(default_factory=VehicleInfo)
    is_paid: bool | None = None
    date: str | None = None
    time: str | None = None

    @field_validator("is_paid", mode="before")
    @classmethod
    def _strict_paid(cls, value: Any) -> bool | None:
        # "1", "yes" and friends are not an exact ``true``.
        if value is None or isinstance(value, bool):
            return value
        return None


class Snapshot(RidersBudBaseModel):
    """Immutable, fully-materialized view of all bookings at one point in time."""

    bookings: tuple[Booking, ...] = ()

    @classmethod
    def from_bookings(cls, bookings: Iterable[Booking | Mapping[str, Any]]) -> Snapshot:
        return cls.model_validate({"bookings": list(bookings)})

    def get(self, booking_id: str) -> Booking | None:
        for booking in self.bookings:
            if booking.id == booking_id:
                return booking
        return None

    def index(self) -> dict[str, Booking]:
        """Bookings keyed by id (first occurrence wins)."""
        indexed: dict[str, Booking] = {}
        for booking in self.bookings:
            indexed.setdefault(booking.id, booking)
        return indexed
