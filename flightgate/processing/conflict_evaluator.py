"""
Conflict evaluation for a flight corridor.

Classifies zones, notices and weather observations into blocking and
advisory reasons. Records with geometry that cannot be parsed or tested
are treated as non-intersecting (fail-open for malformed upstream data).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from shapely.geometry.base import BaseGeometry

from ..models.airspace import Notice, WeatherObservation, Zone
from ..models.decision import Reason, ReasonCode
from ..utils.geometry import GEOMETRY_ERRORS, BoundingBox, parse_geometry

logger = logging.getLogger(__name__)

WIND_LIMIT_KTS = 25.0


@dataclass
class ConflictReport:
    """Reasons in emission order: zones, then notices, then weather."""
    blocking: list[Reason] = field(default_factory=list)
    advisory: list[Reason] = field(default_factory=list)

    @property
    def has_blocking(self) -> bool:
        return bool(self.blocking)

    @property
    def has_advisory(self) -> bool:
        return bool(self.advisory)


def intersects_corridor(geometry, corridor: BaseGeometry, label: str = "") -> bool:
    """Geometric intersection test that never raises."""
    if not geometry:
        return False
    try:
        return bool(parse_geometry(geometry).intersects(corridor))
    except GEOMETRY_ERRORS as e:
        logger.warning(f"Skipping malformed geometry {label!r}: {e}")
        return False


def _format_speed(value: float) -> str:
    return f"{value:g}"


class ConflictEvaluator:
    """Evaluates airspace records against a corridor and time window."""

    def __init__(self, wind_limit_kts: float = WIND_LIMIT_KTS):
        self.wind_limit_kts = wind_limit_kts

    def evaluate(
        self,
        corridor: BaseGeometry,
        zones: Iterable[Zone],
        notices: Iterable[Notice],
        weather: Iterable[WeatherObservation],
        time_start: datetime,
        time_end: datetime,
        bbox: Optional[BoundingBox] = None,
    ) -> ConflictReport:
        """
        Classify conflicts for one flight.

        Args:
            corridor: Buffered route polygon
            zones: Restricted zones (always blocking)
            notices: NOTAMs (blocking when hard, advisory otherwise)
            weather: Point observations (advisory only)
            time_start: Flight window start
            time_end: Flight window end
            bbox: Query box used to scope weather observations

        Returns:
            ConflictReport with blocking and advisory reasons
        """
        report = ConflictReport()

        for zone in zones:
            if not zone.is_active(time_start, time_end):
                continue
            if intersects_corridor(zone.geometry, corridor, zone.name):
                report.blocking.append(
                    Reason(code=ReasonCode.AIRSPACE_RESTRICTED.value, detail=zone.name)
                )

        for notice in notices:
            if not notice.is_active(time_start, time_end):
                continue
            if intersects_corridor(notice.geometry, corridor, notice.title):
                reason = Reason(
                    code=ReasonCode.for_notice(notice.effective_severity),
                    detail=notice.title,
                )
                if notice.is_hard:
                    report.blocking.append(reason)
                else:
                    report.advisory.append(reason)

        wind = self.check_wind(weather, time_start, time_end, bbox)
        if wind is not None:
            report.advisory.append(wind)

        logger.debug(
            f"Conflicts: {len(report.blocking)} blocking, {len(report.advisory)} advisory"
        )
        return report

    def check_wind(
        self,
        weather: Iterable[WeatherObservation],
        time_start: datetime,
        time_end: datetime,
        bbox: Optional[BoundingBox] = None,
    ) -> Optional[Reason]:
        """Return one advisory for the first observation above the wind limit."""
        for obs in weather:
            if not obs.has_position():
                continue
            if bbox is not None and not bbox.contains(obs.lon, obs.lat):
                continue
            if not obs.is_active(time_start, time_end):
                continue
            if obs.wind_speed_kts > self.wind_limit_kts:
                return Reason(
                    code=ReasonCode.WEATHER_WIND.value,
                    detail=f"Wind {_format_speed(obs.wind_speed_kts)}kt > {_format_speed(self.wind_limit_kts)}",
                )
        return None
