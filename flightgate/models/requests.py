"""API request models."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class FlightRequest(BaseModel):
    """Request body for a flight decision.

    The route is kept loose here; its shape is validated by the decision
    pipeline so a malformed route yields InvalidInput instead of a schema error.
    """
    model_config = ConfigDict(populate_by_name=True)

    operator_id: Optional[str] = Field(default=None, alias="operatorId", description="Operator identifier")
    drone_id: Optional[str] = Field(default=None, alias="droneId", description="Drone identifier")
    purpose: Optional[str] = Field(default=None, description="Free text flight purpose")
    # Missing times are reported by the pipeline as InvalidInput (400), not a schema error
    time_start: Optional[datetime] = Field(default=None, alias="timeStart", description="Start of the flight window")
    time_end: Optional[datetime] = Field(default=None, alias="timeEnd", description="End of the flight window")
    route: Any = Field(default=None, description="GeoJSON LineString of [lon, lat] pairs")
