"""Picture metadata model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class PictureData(BaseModel):
    """Geo-tagged metadata for a single picture file.

    Instances are frozen: durable fields only change by saving a new
    instance under the same key.

    Parameters
    ----------
    key : str
        Unique identifier of the picture (its file path or URI).
    latitude : float
        Latitude in degrees. Range is not validated.
    longitude : float
        Longitude in degrees. Range is not validated.
    timestamp : int
        Time at which the picture was taken, used for display ordering.
    displayed : bool
        Whether a map marker has been materialized for this picture.
        Runtime-only; never persisted and reset whenever the picture is
        (re)loaded from the store.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    key: str = Field(..., validation_alias=AliasChoices("key", "uri"))
    latitude: float = 0.0
    longitude: float = 0.0
    timestamp: int = Field(default=0, validation_alias=AliasChoices("timestamp", "time"))
    displayed: bool = Field(default=False, exclude=True)

    @field_validator("key")
    @classmethod
    def _check_key(cls, value: str) -> str:
        # File names may legitimately start or end with whitespace; never rewrite the key.
        if not value.strip():
            raise ValueError("key must be non-empty")
        return value

    @property
    def lat_lng(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)

    def durable_copy(self) -> PictureData:
        """Return a fresh copy carrying only the persisted fields."""
        return PictureData(
            key=self.key,
            latitude=self.latitude,
            longitude=self.longitude,
            timestamp=self.timestamp,
        )

    def with_displayed(self, displayed: bool = True) -> PictureData:
        return self.model_copy(update={"displayed": displayed})

    def durable_fields(self) -> dict[str, Any]:
        """Column mapping used by store implementations."""
        return {
            "uri": self.key,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "time": self.timestamp,
        }

    def same_durable_fields(self, other: PictureData) -> bool:
        return (
            self.key == other.key
            and self.latitude == other.latitude
            and self.longitude == other.longitude
            and self.timestamp == other.timestamp
        )
