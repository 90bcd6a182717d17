"""
Flight decision pipeline.

Sequences corridor building, store queries, conflict evaluation and
replanning into one of three outcomes: approved, rejected or alternative.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError

from ..config import DecisionSettings
from ..exceptions import InvalidInput
from ..models.airspace import as_utc
from ..models.decision import FlightDecision, RouteGeometry
from ..storage.base import AirspaceStore
from ..utils.geometry import bounding_box, build_corridor
from .conflict_evaluator import ConflictEvaluator
from .grid_pathfinder import GridPathfinder

logger = logging.getLogger(__name__)


def validate_route(route: Any) -> RouteGeometry:
    """Check the route is a LineString of at least two finite [lon, lat] pairs."""
    if isinstance(route, RouteGeometry):
        return route
    if not isinstance(route, dict):
        raise InvalidInput("Invalid route LineString")
    try:
        return RouteGeometry.model_validate(route)
    except ValidationError as e:
        raise InvalidInput(f"Invalid route LineString: {e.errors()[0]['msg']}") from e


class FlightDecisionPipeline:
    """
    Decides whether a drone flight may proceed.

    Holds no per-request state: every call builds its own corridor, grid
    and search state and opens its own store session.
    """

    def __init__(self, store: AirspaceStore, settings: Optional[DecisionSettings] = None):
        self.store = store
        self.settings = settings or DecisionSettings()
        self.evaluator = ConflictEvaluator(wind_limit_kts=self.settings.wind_limit_kts)
        self.pathfinder = GridPathfinder(
            steps=self.settings.grid_steps,
            simplify_tolerance_m=self.settings.route_simplify_tolerance_m,
            meters_per_degree=self.settings.meters_per_degree,
        )

    async def close(self):
        """Close the underlying store."""
        await self.store.close()

    async def decide_flight(
        self,
        operator_id: Optional[str],
        drone_id: Optional[str],
        purpose: Optional[str],
        time_start: Optional[datetime],
        time_end: Optional[datetime],
        route: Any,
    ) -> FlightDecision:
        """
        Evaluate a flight request.

        Args:
            operator_id: Requesting operator
            drone_id: Drone to fly
            purpose: Free text purpose
            time_start: Start of the flight window
            time_end: End of the flight window
            route: GeoJSON LineString of [lon, lat] pairs

        Returns:
            FlightDecision with reasons and, for alternatives, a new route

        Raises:
            InvalidInput: malformed route or time window (no store access made)
            UpstreamUnavailable: the spatial store could not be queried
        """
        line = validate_route(route)
        if time_start is None or time_end is None:
            raise InvalidInput("timeStart and timeEnd are required")
        if as_utc(time_start) > as_utc(time_end):
            raise InvalidInput("timeStart must not be after timeEnd")

        corridor = build_corridor(line, self.settings.corridor_width_m)
        bbox = bounding_box(line)

        logger.info(
            f"Evaluating flight operator={operator_id} drone={drone_id} "
            f"purpose={purpose!r} bbox={bbox.to_param()}"
        )

        async with self.store.session() as session:
            zones = await session.fetch_zones(bbox, time_start, time_end)
            notices = await session.fetch_notices(bbox, time_start, time_end)
            weather = await session.fetch_weather(bbox, time_start, time_end)

        report = self.evaluator.evaluate(
            corridor, zones, notices, weather, time_start, time_end, bbox=bbox
        )

        if report.has_blocking:
            logger.info(f"Flight rejected: {[r.code for r in report.blocking]}")
            return FlightDecision.rejected(report.blocking)

        if not report.has_advisory:
            logger.info("Flight approved")
            return FlightDecision.approved()

        # Only zones block replanning; notices and weather stay advisory
        result = self.pathfinder.find_path(line.start, line.end, bbox, zones)
        if result.path_valid:
            logger.info(f"Flight alternative: {[r.code for r in report.advisory]}")
            return FlightDecision.alternative(
                report.advisory, RouteGeometry.model_validate(result.route)
            )

        logger.info("Flight rejected: advisory conflicts and no alternative path")
        return FlightDecision.rejected(report.advisory)
