"""Live location model."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from pyridersbud.models._base import Timestamp, utcnow


class LocationFix(BaseModel):
    """A single position report from a location source.

    Parameters
    ----------
    latitude : float
        Latitude in degrees.
    longitude : float
        Longitude in degrees.
    accuracy : float or None
        Reported accuracy radius in meters.
    timestamp : datetime
        When the position was observed.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    latitude: float = Field(validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(validation_alias=AliasChoices("longitude", "lng", "lon"))
    accuracy: float | None = None
    timestamp: Timestamp = Field(default_factory=utcnow)

    def as_coordinates(self) -> dict[str, float]:
        """Payload shape expected by the store's location mutation."""
        return {"lat": self.latitude, "lng": self.longitude}
