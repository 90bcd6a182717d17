"""Spatial store interface and in-memory implementation."""

from .base import AirspaceSession, AirspaceStore
from .memory import InMemoryAirspaceStore, InMemorySession

__all__ = [
    "AirspaceSession",
    "AirspaceStore",
    "InMemoryAirspaceStore",
    "InMemorySession",
]
