"""Base model and enum for persisted RidersBUD records.

Every persisted record model inherits from :class:`RidersBudBaseModel` which
provides:

* ``alias_generator=to_camel`` so the camelCase keys written by the web
  client (``serviceName``, ``isPaid``) map to snake_case fields, and
  :meth:`RidersBudBaseModel.to_storage` writes them back the same way.
* Frozen instances: snapshots and messages are never mutated in place.
* ``extra="ignore"`` so unrelated fields on stored records are tolerated.

Status enums inherit from :class:`RidersBudEnum` which adds an ``UNKNOWN``
member and a ``_missing_`` hook that returns ``UNKNOWN`` for any value
without a mapped member.
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_timestamp(value: Any) -> datetime | None:
    """Convert an epoch timestamp (seconds **or** milliseconds) or ISO string to a UTC datetime.

    ``Date.now()`` values written by the web client are milliseconds.
    """
    if value is None:
        return value
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, str):
        text = value.strip()
        if not text.lstrip("-").isdigit():
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
        value = text
    ts = int(float(value))
    if ts >= _MS_THRESHOLD:
        return datetime.fromtimestamp(ts / 1000, tz=UTC)
    return datetime.fromtimestamp(ts, tz=UTC)


def utcnow() -> datetime:
    return datetime.now(UTC)


Timestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]
"""Annotated type that coerces epoch ints (seconds or ms) and ISO strings to UTC datetimes."""


class RidersBudEnum(enum.StrEnum):
    """Base for persisted status enums.

    Every subclass **must** define ``UNKNOWN``. Values without a mapped
    member resolve to ``UNKNOWN`` instead of raising ``ValueError``.
    """

    @classmethod
    def _missing_(cls, value: object) -> RidersBudEnum:
        if hasattr(cls, "UNKNOWN"):
            unknown: RidersBudEnum = cls.UNKNOWN  # type: ignore[attr-defined]
            return unknown
        return next(iter(cls))


class RidersBudBaseModel(BaseModel):
    """Base for persisted record models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_storage(self) -> dict[str, Any]:
        """JSON-ready dict using the camelCase keys of the stored records."""
        return self.model_dump(mode="json", by_alias=True)
