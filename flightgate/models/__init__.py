"""Pydantic models for the flight decision pipeline."""

from .airspace import (
    Zone,
    Notice,
    WeatherObservation,
    overlaps,
    as_utc,
)
from .decision import (
    RouteGeometry,
    ReasonCode,
    Reason,
    DecisionOutcome,
    FlightDecision,
)
from .requests import FlightRequest

__all__ = [
    # Airspace records
    "Zone",
    "Notice",
    "WeatherObservation",
    "overlaps",
    "as_utc",
    # Decisions
    "RouteGeometry",
    "ReasonCode",
    "Reason",
    "DecisionOutcome",
    "FlightDecision",
    # Requests
    "FlightRequest",
]
