"""
Spatial store interface.

A store hands out one session per flight decision. The session must be
released on every exit path, so it is exposed as an async context manager.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import AsyncContextManager

from ..models.airspace import Notice, WeatherObservation, Zone
from ..utils.geometry import BoundingBox


class AirspaceSession(ABC):
    """Queries scoped to a bounding box and a time window.

    Every fetch returns records whose geometry intersects the box and whose
    validity overlaps [start, end]. Failures raise UpstreamUnavailable.
    """

    @abstractmethod
    async def fetch_zones(self, bbox: BoundingBox, start: datetime, end: datetime) -> list[Zone]:
        ...

    @abstractmethod
    async def fetch_notices(self, bbox: BoundingBox, start: datetime, end: datetime) -> list[Notice]:
        ...

    @abstractmethod
    async def fetch_weather(
        self, bbox: BoundingBox, start: datetime, end: datetime
    ) -> list[WeatherObservation]:
        ...


class AirspaceStore(ABC):
    """Source of zones, notices and weather observations."""

    @abstractmethod
    def session(self) -> AsyncContextManager[AirspaceSession]:
        """Acquire a session; released when the context exits."""
        ...

    async def close(self) -> None:
        """Release long-lived resources (nothing by default)."""
        return None
