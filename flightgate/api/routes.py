"""FastAPI route definitions."""

import logging
from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException

from .. import __version__
from ..exceptions import InvalidInput, UpstreamUnavailable
from ..models.requests import FlightRequest
from ..processing.decision_pipeline import FlightDecisionPipeline
from ..utils.geometry import BoundingBox

logger = logging.getLogger(__name__)

router = APIRouter()


# Dependency to get pipeline instance (set in main.py)
_pipeline: Optional[FlightDecisionPipeline] = None


def get_pipeline() -> FlightDecisionPipeline:
    """Get the pipeline instance."""
    if _pipeline is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialized")
    return _pipeline


def set_pipeline(pipeline: Optional[FlightDecisionPipeline]):
    """Set the pipeline instance (called from main.py)."""
    global _pipeline
    _pipeline = pipeline


def _error_status(error: Exception) -> tuple[str, int]:
    """Map an exception to a user-facing message and HTTP status code."""
    if isinstance(error, InvalidInput):
        return str(error), 400
    if isinstance(error, UpstreamUnavailable):
        return str(error), 502
    return "An unexpected error occurred. Please try again.", 500


def _query_window(time: Optional[datetime]) -> datetime:
    return time or datetime.now(timezone.utc)


def _parse_bbox(bbox: str) -> BoundingBox:
    try:
        return BoundingBox.from_param(bbox)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/")
async def service_status():
    """Service status - does not touch the spatial store."""
    return {"status": "ok", "service": "FlightGate", "version": __version__}


@router.post("/v1/flight-requests")
async def create_flight_request(
    request: FlightRequest,
    pipeline: Annotated[FlightDecisionPipeline, Depends(get_pipeline)],
):
    """Evaluate a flight and return approved, rejected or alternative."""
    try:
        decision = await pipeline.decide_flight(
            operator_id=request.operator_id,
            drone_id=request.drone_id,
            purpose=request.purpose,
            time_start=request.time_start,
            time_end=request.time_end,
            route=request.route,
        )
    except (InvalidInput, UpstreamUnavailable) as e:
        message, status = _error_status(e)
        logger.warning(f"Flight request failed ({status}): {message}")
        raise HTTPException(status_code=status, detail=message)
    except Exception as e:
        logger.exception("Flight decision failed")
        message, status = _error_status(e)
        raise HTTPException(status_code=status, detail=message)

    return decision.to_response()


@router.get("/v1/zones")
async def list_zones(
    bbox: str,
    pipeline: Annotated[FlightDecisionPipeline, Depends(get_pipeline)],
    time: Optional[datetime] = None,
):
    """Zones intersecting the box and valid at the given time."""
    box = _parse_bbox(bbox)
    at = _query_window(time)
    try:
        async with pipeline.store.session() as session:
            zones = await session.fetch_zones(box, at, at)
    except UpstreamUnavailable as e:
        message, status = _error_status(e)
        raise HTTPException(status_code=status, detail=message)

    return {"type": "FeatureCollection", "features": [z.to_feature() for z in zones]}


@router.get("/v1/notams")
async def list_notams(
    bbox: str,
    pipeline: Annotated[FlightDecisionPipeline, Depends(get_pipeline)],
    time: Optional[datetime] = None,
):
    """Notices intersecting the box and active at the given time."""
    box = _parse_bbox(bbox)
    at = _query_window(time)
    try:
        async with pipeline.store.session() as session:
            notices = await session.fetch_notices(box, at, at)
    except UpstreamUnavailable as e:
        message, status = _error_status(e)
        raise HTTPException(status_code=status, detail=message)

    return {"type": "FeatureCollection", "features": [n.to_feature() for n in notices]}


@router.get("/v1/weather")
async def list_weather(
    bbox: str,
    pipeline: Annotated[FlightDecisionPipeline, Depends(get_pipeline)],
    time: Optional[datetime] = None,
):
    """Weather observations inside the box and valid at the given time."""
    box = _parse_bbox(bbox)
    at = _query_window(time)
    try:
        async with pipeline.store.session() as session:
            observations = await session.fetch_weather(box, at, at)
    except UpstreamUnavailable as e:
        message, status = _error_status(e)
        raise HTTPException(status_code=status, detail=message)

    return {
        "updated": datetime.now(timezone.utc).isoformat(),
        "observations": [o.model_dump(mode="json") for o in observations],
    }
