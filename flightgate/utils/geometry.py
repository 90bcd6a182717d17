"""
Geometry helpers for flight corridors.

All geometry is 2-D lon/lat (EPSG:4326). Metric operations (buffering) go
through a local azimuthal equidistant projection centred on the route.
"""

import math
from dataclasses import dataclass
from typing import Any, Mapping, Sequence, Union

from pyproj import Transformer
from shapely.errors import ShapelyError
from shapely.geometry import LineString, Point, Polygon, box, mapping, shape
from shapely.geometry.base import BaseGeometry
from shapely.ops import transform

from ..exceptions import InvalidGeometry, InvalidInput

METERS_PER_DEGREE = 111000.0

# Anything shapely or the GeoJSON parser can throw on a bad record
GEOMETRY_ERRORS = (ShapelyError, ValueError, TypeError, KeyError, IndexError, AttributeError)

GeometryLike = Union[BaseGeometry, Mapping[str, Any], Any]


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned lon/lat extremes (west, south, east, north)."""
    west: float
    south: float
    east: float
    north: float

    @classmethod
    def from_param(cls, value: str) -> "BoundingBox":
        """Parse a "w,s,e,n" query parameter."""
        parts = [p.strip() for p in str(value or "").split(",")]
        if len(parts) != 4:
            raise InvalidInput('Invalid bbox; expected "w,s,e,n"')
        try:
            w, s, e, n = (float(p) for p in parts)
        except ValueError:
            raise InvalidInput('Invalid bbox; expected "w,s,e,n"')
        if not all(math.isfinite(v) for v in (w, s, e, n)):
            raise InvalidInput('Invalid bbox; expected "w,s,e,n"')
        return cls(west=w, south=s, east=e, north=n)

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.west, self.south, self.east, self.north)

    def to_polygon(self) -> Polygon:
        return box(self.west, self.south, self.east, self.north)

    def to_wkt(self) -> str:
        """Closed polygon ring in WKT, the form spatial SQL stores expect."""
        w, s, e, n = self.as_tuple()
        return f"POLYGON(({w} {s}, {e} {s}, {e} {n}, {w} {n}, {w} {s}))"

    def to_param(self) -> str:
        return ",".join(str(v) for v in self.as_tuple())

    def contains(self, lon: float, lat: float) -> bool:
        """Inclusive point-in-box test."""
        return self.west <= lon <= self.east and self.south <= lat <= self.north


def parse_geometry(geometry: GeometryLike) -> BaseGeometry:
    """Convert a GeoJSON mapping (or a model holding one) into a shapely geometry."""
    if isinstance(geometry, BaseGeometry):
        return geometry
    if hasattr(geometry, "model_dump"):
        geometry = geometry.model_dump()
    if not geometry:
        raise ValueError("empty geometry")
    return shape(geometry)


def to_geojson(geometry: BaseGeometry) -> dict:
    """Shapely geometry to a GeoJSON mapping with list coordinates."""
    if isinstance(geometry, LineString):
        return {
            "type": "LineString",
            "coordinates": [[x, y] for x, y in geometry.coords],
        }
    return dict(mapping(geometry))


def _route_positions(route: GeometryLike) -> list[tuple[float, float]]:
    """Extract the valid (lon, lat) pairs from a route, dropping extra ordinates."""
    if isinstance(route, BaseGeometry):
        coords = list(route.coords)
    elif hasattr(route, "coordinates"):
        coords = route.coordinates
    elif isinstance(route, Mapping):
        coords = route.get("coordinates") or []
    else:
        coords = route or []

    positions = []
    for c in coords:
        if not isinstance(c, Sequence) or isinstance(c, (str, bytes)) or len(c) < 2:
            continue
        lon, lat = c[0], c[1]
        if isinstance(lon, bool) or isinstance(lat, bool):
            continue
        if not isinstance(lon, (int, float)) or not isinstance(lat, (int, float)):
            continue
        if math.isfinite(lon) and math.isfinite(lat):
            positions.append((float(lon), float(lat)))
    return positions


def build_corridor(route: GeometryLike, width_meters: float = 50.0) -> Polygon:
    """
    Buffer a route into a corridor polygon.

    Args:
        route: LineString (GeoJSON mapping, RouteGeometry or shapely)
        width_meters: Lateral margin on each side, round caps and joins

    Returns:
        Corridor polygon in lon/lat

    Raises:
        InvalidGeometry: fewer than 2 usable coordinate pairs
    """
    positions = _route_positions(route)
    if len(positions) < 2:
        raise InvalidGeometry("Route needs at least 2 valid [lon, lat] pairs")

    line = LineString(positions)
    west, south, east, north = line.bounds
    lon0 = (west + east) / 2
    lat0 = (south + north) / 2

    local = f"+proj=aeqd +lat_0={lat0} +lon_0={lon0} +datum=WGS84 +units=m"
    to_local = Transformer.from_crs("EPSG:4326", local, always_xy=True)
    to_wgs84 = Transformer.from_crs(local, "EPSG:4326", always_xy=True)

    projected = transform(to_local.transform, line)
    if projected.length == 0:
        # Degenerate route: every point coincides
        projected = Point(projected.coords[0])

    buffered = projected.buffer(width_meters, quad_segs=8)
    return transform(to_wgs84.transform, buffered)


def bounding_box(geometry: GeometryLike) -> BoundingBox:
    """Minimal axis-aligned box enclosing every coordinate of a geometry."""
    if not isinstance(geometry, BaseGeometry):
        positions = None
        if isinstance(geometry, Mapping) and geometry.get("type") == "LineString":
            positions = _route_positions(geometry)
        elif hasattr(geometry, "coordinates"):
            positions = _route_positions(geometry)
        geometry = LineString(positions) if positions else parse_geometry(geometry)
    west, south, east, north = geometry.bounds
    return BoundingBox(west=west, south=south, east=east, north=north)


def simplify_line(
    line: GeometryLike,
    tolerance_meters: float = 10.0,
    meters_per_degree: float = METERS_PER_DEGREE,
) -> dict:
    """
    Douglas-Peucker simplification with a tolerance in meters.

    The tolerance is converted to degrees with a flat meters-per-degree
    factor. Topology is not preserved; output is cosmetic.

    Returns:
        GeoJSON LineString mapping
    """
    if isinstance(line, BaseGeometry):
        geom = line
    else:
        geom = LineString(_route_positions(line))
    simplified = geom.simplify(tolerance_meters / meters_per_degree, preserve_topology=False)
    return to_geojson(simplified)
