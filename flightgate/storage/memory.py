"""
In-memory spatial store.
Holds airspace records in process memory; used for tests and local runs.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

from ..exceptions import UpstreamUnavailable
from ..models.airspace import Notice, WeatherObservation, Zone
from ..utils.geometry import GEOMETRY_ERRORS, BoundingBox, parse_geometry
from .base import AirspaceSession, AirspaceStore


def _touches_box(geometry, bbox: BoundingBox) -> bool:
    """Box intersection; unparseable geometry passes through to the evaluator."""
    if not geometry:
        return False
    try:
        return bool(parse_geometry(geometry).intersects(bbox.to_polygon()))
    except GEOMETRY_ERRORS:
        return True


class InMemoryAirspaceStore(AirspaceStore):
    """
    In-memory airspace store.

    Tracks how many sessions are open so callers can verify that every
    session is released. Setting `fail_with` makes every query raise
    UpstreamUnavailable with that message.
    """

    def __init__(
        self,
        zones: Optional[list[Zone]] = None,
        notices: Optional[list[Notice]] = None,
        weather: Optional[list[WeatherObservation]] = None,
    ):
        """
        Initialize store.

        Args:
            zones: Initial restricted zones
            notices: Initial NOTAMs
            weather: Initial weather observations
        """
        self._zones: list[Zone] = list(zones or [])
        self._notices: list[Notice] = list(notices or [])
        self._weather: list[WeatherObservation] = list(weather or [])

        self.fail_with: Optional[str] = None
        self.open_sessions = 0
        self.sessions_opened = 0

    def add_zone(self, zone: Zone) -> None:
        self._zones.append(zone)

    def add_notice(self, notice: Notice) -> None:
        self._notices.append(notice)

    def add_weather(self, observation: WeatherObservation) -> None:
        self._weather.append(observation)

    def clear(self) -> None:
        """Clear all records (useful for testing)."""
        self._zones.clear()
        self._notices.clear()
        self._weather.clear()

    @asynccontextmanager
    async def session(self) -> AsyncIterator["InMemorySession"]:
        self.open_sessions += 1
        self.sessions_opened += 1
        try:
            yield InMemorySession(self)
        finally:
            self.open_sessions -= 1

    def _check_available(self) -> None:
        if self.fail_with:
            raise UpstreamUnavailable(self.fail_with, source="memory")


class InMemorySession(AirspaceSession):
    """Session over an InMemoryAirspaceStore."""

    def __init__(self, store: InMemoryAirspaceStore):
        self._store = store

    async def fetch_zones(self, bbox: BoundingBox, start: datetime, end: datetime) -> list[Zone]:
        self._store._check_available()
        return [
            z for z in self._store._zones
            if z.is_active(start, end) and _touches_box(z.geometry, bbox)
        ]

    async def fetch_notices(self, bbox: BoundingBox, start: datetime, end: datetime) -> list[Notice]:
        self._store._check_available()
        return [
            n for n in self._store._notices
            if n.is_active(start, end) and _touches_box(n.geometry, bbox)
        ]

    async def fetch_weather(
        self, bbox: BoundingBox, start: datetime, end: datetime
    ) -> list[WeatherObservation]:
        self._store._check_available()
        return [
            w for w in self._store._weather
            if w.has_position() and bbox.contains(w.lon, w.lat) and w.is_active(start, end)
        ]
