"""Geometry utilities."""

from .geometry import (
    BoundingBox,
    build_corridor,
    bounding_box,
    simplify_line,
    parse_geometry,
    to_geojson,
)

__all__ = [
    "BoundingBox",
    "build_corridor",
    "bounding_box",
    "simplify_line",
    "parse_geometry",
    "to_geojson",
]
