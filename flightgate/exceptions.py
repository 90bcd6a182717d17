"""
Flight decision exceptions.

Only request validation and store outages surface as errors. Everything
else degrades into reason lists on the decision itself.
"""


class FlightGateError(Exception):
    """Base class for all flight decision errors."""
    pass


class InvalidInput(FlightGateError):
    """Raised when a flight request is malformed (route, time window, bbox)."""
    pass


class InvalidGeometry(InvalidInput):
    """Raised when a geometry has too few usable coordinates."""
    pass


class UpstreamUnavailable(FlightGateError):
    """Raised when the spatial store cannot be queried."""

    def __init__(self, message="Spatial store unavailable", source=None):
        self.source = source
        super().__init__(f"{message} [Source: {source}]" if source else message)
