"""Flight decision models - route input, conflict reasons and outcomes."""

import math
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


class RouteGeometry(BaseModel):
    """GeoJSON LineString of (lon, lat) pairs."""
    type: Literal["LineString"] = "LineString"
    coordinates: list[list[float]] = Field(
        description="Ordered [lon, lat] positions, at least two",
        min_length=2,
    )

    @field_validator("coordinates")
    @classmethod
    def check_positions(cls, coordinates: list[list[float]]) -> list[list[float]]:
        cleaned = []
        for i, position in enumerate(coordinates):
            if len(position) < 2:
                raise ValueError(f"position {i} needs lon and lat")
            lon, lat = position[0], position[1]
            if not (math.isfinite(lon) and math.isfinite(lat)):
                raise ValueError(f"position {i} is not finite")
            if not (-180 <= lon <= 180 and -90 <= lat <= 90):
                raise ValueError(f"position {i} is outside lon/lat range")
            # Altitude and other ordinates are dropped
            cleaned.append([lon, lat])
        return cleaned

    @property
    def start(self) -> tuple[float, float]:
        return tuple(self.coordinates[0])

    @property
    def end(self) -> tuple[float, float]:
        return tuple(self.coordinates[-1])


class ReasonCode(str, Enum):
    """Stable reason codes. Notice codes are built from their severity."""
    AIRSPACE_RESTRICTED = "AIRSPACE_RESTRICTED"
    WEATHER_WIND = "WEATHER_WIND"

    @staticmethod
    def for_notice(severity: str) -> str:
        return f"NOTAM_{severity.upper()}"


class Reason(BaseModel):
    """A single conflict found while evaluating a flight."""
    code: str
    detail: str


class DecisionOutcome(str, Enum):
    """Terminal states of a flight decision."""
    APPROVED = "approved"
    REJECTED = "rejected"
    ALTERNATIVE = "alternative"


class FlightDecision(BaseModel):
    """Outcome of a flight request plus the reasons that produced it."""
    decision: DecisionOutcome
    reasons: list[Reason] = Field(default_factory=list)
    alternative_route: Optional[RouteGeometry] = Field(
        default=None,
        serialization_alias="alternativeRoute",
        description="Replacement route, only for alternative decisions"
    )

    @classmethod
    def approved(cls) -> "FlightDecision":
        return cls(decision=DecisionOutcome.APPROVED)

    @classmethod
    def rejected(cls, reasons: list[Reason]) -> "FlightDecision":
        return cls(decision=DecisionOutcome.REJECTED, reasons=list(reasons))

    @classmethod
    def alternative(cls, reasons: list[Reason], route: RouteGeometry) -> "FlightDecision":
        return cls(
            decision=DecisionOutcome.ALTERNATIVE,
            reasons=list(reasons),
            alternative_route=route,
        )

    def to_response(self) -> dict:
        """Wire shape: {decision, reasons, alternativeRoute?}."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
