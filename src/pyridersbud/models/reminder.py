"""Service reminder model."""

from __future__ import annotations

import datetime as dt

from pyridersbud.models._base import RidersBudBaseModel


class Reminder(RidersBudBaseModel):
    """A customer-scheduled service reminder (``date`` is ``YYYY-MM-DD``)."""

    id: str
    date: dt.date
    service_name: str
    vehicle: str = ""
    notes: str | None = None

    def days_until(self, today: dt.date) -> int:
        return (self.date - today).days
