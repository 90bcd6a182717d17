"""API clients for external services."""

from .airspace_api import AirspaceApiStore, AirspaceApiSession

__all__ = [
    "AirspaceApiStore",
    "AirspaceApiSession",
]
