"""Location models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from geosentinel.ingestion.normalize import checked_epoch_ms, safe_float


def _coerce_coordinate(value: Any) -> float:
    parsed = safe_float(value)
    if parsed is None:
        raise ValueError(f"not a finite coordinate: {value!r}")
    return parsed


class Coordinates(BaseModel):
    """A position fix produced by a sampler.

    Parameters
    ----------
    latitude : float
        Latitude in signed degrees, ``-90..90``.
    longitude : float
        Longitude in signed degrees, ``-180..180``.
    accuracy : float or None
        Reported accuracy radius in metres, if the sampler provides one.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    latitude: float = Field(ge=-90.0, le=90.0, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(ge=-180.0, le=180.0, validation_alias=AliasChoices("longitude", "lng", "lon"))
    accuracy: float | None = None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float:
        return _coerce_coordinate(value)

    @field_validator("accuracy", mode="before")
    @classmethod
    def _coerce_accuracy(cls, value: Any) -> float | None:
        return safe_float(value)


class LocationRecord(BaseModel):
    """A pending row of the outbox.

    Records are immutable once stored. ``id`` is assigned by the store and
    increases with insertion order; ``captured_at`` is the epoch-millisecond
    ingestion time, serialized as ``timestamp`` like the ``locations`` column.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
    )

    id: int
    latitude: float
    longitude: float
    captured_at: int = Field(validation_alias=AliasChoices("captured_at", "timestamp"), serialization_alias="timestamp")

    @field_validator("captured_at", mode="before")
    @classmethod
    def _check_timestamp(cls, value: Any) -> int:
        parsed = checked_epoch_ms(value)
        if parsed is None:
            raise ValueError(f"invalid capture timestamp: {value!r}")
        return parsed

    def to_wire(self) -> dict[str, Any]:
        """Row shape sent in the batch body."""
        return self.model_dump(by_alias=True)
