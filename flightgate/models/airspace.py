"""Airspace records returned by the spatial store."""

import math
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def overlaps(
    valid_from: Optional[datetime],
    valid_to: Optional[datetime],
    start: datetime,
    end: datetime,
) -> bool:
    """Inclusive interval overlap; a missing bound is unbounded on that side."""
    if valid_from is not None and as_utc(valid_from) > as_utc(end):
        return False
    if valid_to is not None and as_utc(valid_to) < as_utc(start):
        return False
    return True


class Zone(BaseModel):
    """Restricted airspace polygon. Always blocking."""
    id: Optional[str] = Field(default=None, description="Store identifier")
    name: str = Field(description="Human readable zone name")
    geometry: Optional[dict[str, Any]] = Field(
        default=None,
        description="GeoJSON geometry; malformed values are tolerated"
    )
    valid_from: Optional[datetime] = Field(default=None, description="Start of validity, open if absent")
    valid_to: Optional[datetime] = Field(default=None, description="End of validity, open if absent")

    def is_active(self, start: datetime, end: datetime) -> bool:
        return overlaps(self.valid_from, self.valid_to, start, end)

    @classmethod
    def from_feature(cls, feature: dict) -> "Zone":
        props = feature.get("properties") or {}
        return cls(
            id=_str_or_none(props.get("id")),
            name=props.get("name") or "",
            geometry=feature.get("geometry"),
            valid_from=props.get("valid_from"),
            valid_to=props.get("valid_to"),
        )

    def to_feature(self) -> dict:
        return {
            "type": "Feature",
            "properties": {
                "id": self.id,
                "name": self.name,
                "valid_from": _iso_or_none(self.valid_from),
                "valid_to": _iso_or_none(self.valid_to),
            },
            "geometry": self.geometry,
        }


class Notice(BaseModel):
    """NOTAM: blocking when severity is hard, advisory otherwise."""
    id: Optional[str] = Field(default=None, description="Store identifier")
    title: str = Field(description="Notice title, used as reason detail")
    severity: Optional[str] = Field(default=None, description="'hard' or a softer tag; absent means hard")
    geometry: Optional[dict[str, Any]] = None
    start: datetime = Field(description="Start of validity")
    end: Optional[datetime] = Field(default=None, description="End of validity, still active if absent")

    @property
    def effective_severity(self) -> str:
        # Case-insensitive: "Hard" and " HARD " block the same as "hard"
        severity = (self.severity or "").strip().lower()
        return severity or "hard"

    @property
    def is_hard(self) -> bool:
        return self.effective_severity == "hard"

    def is_active(self, start: datetime, end: datetime) -> bool:
        return overlaps(self.start, self.end, start, end)

    @classmethod
    def from_feature(cls, feature: dict, default_start: Optional[datetime] = None) -> "Notice":
        """Build from a GeoJSON feature; a missing start falls back to default_start."""
        props = feature.get("properties") or {}
        return cls(
            id=_str_or_none(props.get("id")),
            title=props.get("title") or "",
            severity=props.get("severity"),
            geometry=feature.get("geometry"),
            start=props.get("start") or default_start,
            end=props.get("end"),
        )

    def to_feature(self) -> dict:
        return {
            "type": "Feature",
            "properties": {
                "id": self.id,
                "title": self.title,
                "severity": self.severity,
                "start": _iso_or_none(self.start),
                "end": _iso_or_none(self.end),
            },
            "geometry": self.geometry,
        }


class WeatherObservation(BaseModel):
    """Point weather observation."""
    lon: float = Field(validation_alias=AliasChoices("lon", "lng"))
    lat: float
    wind_speed_kts: float = Field(validation_alias=AliasChoices("wind_speed_kts", "windKts"))
    observed_at: datetime = Field(validation_alias=AliasChoices("observed_at", "observedAt"))
    valid_to: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("valid_to", "validTo")
    )

    # Informational only
    temperature_c: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("temperature_c", "tempC")
    )
    wind_direction: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("wind_direction", "windDir")
    )
    condition: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("condition", "phenomena")
    )

    def is_active(self, start: datetime, end: datetime) -> bool:
        return overlaps(self.observed_at, self.valid_to, start, end)

    @classmethod
    def from_row(cls, row: dict, default_observed_at: Optional[datetime] = None) -> "WeatherObservation":
        """Build from a feed row; rows without an observation time get default_observed_at."""
        if default_observed_at is not None and not (row.get("observed_at") or row.get("observedAt")):
            row = {**row, "observed_at": default_observed_at}
        return cls.model_validate(row)

    def has_position(self) -> bool:
        return math.isfinite(self.lon) and math.isfinite(self.lat)


def _str_or_none(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _iso_or_none(value: Optional[datetime]) -> Optional[str]:
    return None if value is None else value.isoformat()
