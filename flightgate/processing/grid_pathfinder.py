"""
Grid-based A* pathfinder for alternative flight routes.

This pathfinder:
1. Discretizes the route bounding box into a fixed (steps+1)^2 node grid
2. Marks nodes inside restricted zone polygons as blocked
3. Snaps the route endpoints to grid nodes
4. Runs A* on the grid
5. Returns the path as a simplified lon/lat LineString

Moves are 8-connected with a uniform cost of 1 (diagonals are not
penalized) while the heuristic is the Euclidean distance in degrees.
"""

import heapq
import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import numpy as np
import shapely
from shapely.geometry import LineString, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry

from ..models.airspace import Zone
from ..utils.geometry import (
    GEOMETRY_ERRORS,
    METERS_PER_DEGREE,
    BoundingBox,
    parse_geometry,
    simplify_line,
)

logger = logging.getLogger(__name__)

GRID_STEPS = 40
ROUTE_SIMPLIFY_TOLERANCE_M = 30.0

# (dx, dy): orthogonal first, then diagonal. Order decides relocation and tie-breaks.
DIRECTIONS = [
    (1, 0), (-1, 0), (0, 1), (0, -1),
    (1, 1), (-1, 1), (1, -1), (-1, -1),
]


@dataclass
class PathResult:
    """Result of pathfinding."""
    path_valid: bool
    grid_path: List[int] = field(default_factory=list)  # Node indices, start -> goal
    waypoints: List[Tuple[float, float]] = field(default_factory=list)  # Raw (lon, lat) nodes
    route: Optional[dict] = None  # Simplified GeoJSON LineString
    start_node: Optional[int] = None
    goal_node: Optional[int] = None


class PlanningGrid:
    """
    Fixed-resolution node grid over a bounding box.

    Node index is iy * (steps + 1) + ix, with node (ix, iy) placed at
    (west + ix * dx, south + iy * dy).
    """

    def __init__(self, bbox: BoundingBox, steps: int = GRID_STEPS):
        if steps < 1:
            raise ValueError("grid needs at least one step per axis")
        self.bbox = bbox
        self.steps = steps
        self.size = steps + 1

        dx = (bbox.east - bbox.west) / steps
        dy = (bbox.north - bbox.south) / steps
        axis = np.arange(self.size)
        xs = bbox.west + axis * dx
        ys = bbox.south + axis * dy

        # Row-major: x varies fastest
        self.lons = np.tile(xs, self.size)
        self.lats = np.repeat(ys, self.size)
        self.blocked = np.zeros(self.size * self.size, dtype=bool)

    @property
    def node_count(self) -> int:
        return self.size * self.size

    def index(self, ix: int, iy: int) -> int:
        return iy * self.size + ix

    def cell(self, index: int) -> Tuple[int, int]:
        return index % self.size, index // self.size

    def position(self, index: int) -> Tuple[float, float]:
        return float(self.lons[index]), float(self.lats[index])

    def is_blocked(self, index: int) -> bool:
        return bool(self.blocked[index])

    def mark_obstacles(self, obstacles: Iterable[BaseGeometry]) -> int:
        """Block every node inside (or on the edge of) any obstacle. Returns blocked count."""
        for geom in obstacles:
            free = np.flatnonzero(~self.blocked)
            if free.size == 0:
                break
            hits = shapely.intersects_xy(geom, self.lons[free], self.lats[free])
            self.blocked[free[hits]] = True
        return int(self.blocked.sum())

    def nearest_node(self, lon: float, lat: float) -> int:
        """Nearest node by squared coordinate distance; ties go to the lowest index."""
        d = (self.lons - lon) ** 2 + (self.lats - lat) ** 2
        return int(np.argmin(d))

    def neighbors(self, index: int) -> List[int]:
        """In-bounds 8-connected neighbours in DIRECTIONS order."""
        ix, iy = self.cell(index)
        result = []
        for dx, dy in DIRECTIONS:
            jx, jy = ix + dx, iy + dy
            if 0 <= jx <= self.steps and 0 <= jy <= self.steps:
                result.append(self.index(jx, jy))
        return result

    def open_neighbors(self, index: int) -> List[int]:
        return [j for j in self.neighbors(index) if not self.blocked[j]]

    def relocate(self, index: int) -> int:
        """Move a blocked node to its first unblocked neighbour, or keep it."""
        if not self.blocked[index]:
            return index
        for j in self.neighbors(index):
            if not self.blocked[j]:
                return j
        return index


def obstacle_geometries(obstacles: Iterable) -> List[BaseGeometry]:
    """Parse zone geometries into polygons, skipping anything unusable."""
    result = []
    for obstacle in obstacles:
        raw = obstacle.geometry if isinstance(obstacle, Zone) else obstacle
        label = obstacle.name if isinstance(obstacle, Zone) else "obstacle"
        if not raw:
            continue
        try:
            geom = parse_geometry(raw)
        except GEOMETRY_ERRORS as e:
            logger.warning(f"Skipping unparseable planning obstacle {label!r}: {e}")
            continue
        if not isinstance(geom, (Polygon, MultiPolygon)) or geom.is_empty:
            logger.warning(f"Skipping non-polygon planning obstacle {label!r}")
            continue
        result.append(geom)
    return result


class GridPathfinder:
    """
    A* pathfinder for grid-based obstacle avoidance.

    Sized for small fixed grids (41x41 nodes by default) so a search runs
    to completion without yielding.
    """

    def __init__(
        self,
        steps: int = GRID_STEPS,
        simplify_tolerance_m: float = ROUTE_SIMPLIFY_TOLERANCE_M,
        meters_per_degree: float = METERS_PER_DEGREE,
    ):
        """
        Initialize pathfinder.

        Args:
            steps: Grid steps per axis
            simplify_tolerance_m: Tolerance for the output route
            meters_per_degree: Conversion used by the simplifier
        """
        self.steps = steps
        self.simplify_tolerance_m = simplify_tolerance_m
        self.meters_per_degree = meters_per_degree

    def build_grid(self, bbox: BoundingBox, obstacles: Iterable) -> PlanningGrid:
        grid = PlanningGrid(bbox, self.steps)
        blocked = grid.mark_obstacles(obstacle_geometries(obstacles))
        logger.debug(f"Planning grid {grid.size}x{grid.size}: {blocked} blocked nodes")
        return grid

    def find_path(
        self,
        start: Tuple[float, float],
        end: Tuple[float, float],
        bbox: BoundingBox,
        obstacles: Iterable,
    ) -> PathResult:
        """
        Find a path from start to end avoiding obstacles.

        Args:
            start: (lon, lat) route start
            end: (lon, lat) route end
            bbox: Box spanned by the grid
            obstacles: Zones or polygon geometries that block nodes

        Returns:
            PathResult; path_valid is False when the goal is unreachable
        """
        grid = self.build_grid(bbox, obstacles)

        start_node = grid.relocate(grid.nearest_node(*start))
        goal_node = grid.relocate(grid.nearest_node(*end))
        if grid.is_blocked(start_node) or grid.is_blocked(goal_node):
            logger.debug("Snapped endpoint still blocked after relocation")

        path = self._astar(grid, start_node, goal_node)
        if path is None:
            logger.info("No alternative path found on planning grid")
            return PathResult(path_valid=False, start_node=start_node, goal_node=goal_node)

        waypoints = [grid.position(i) for i in path]
        if len(waypoints) == 1:
            # Start and goal share a node
            route = {"type": "LineString", "coordinates": [list(waypoints[0]), list(waypoints[0])]}
        else:
            route = simplify_line(
                LineString(waypoints),
                self.simplify_tolerance_m,
                self.meters_per_degree,
            )

        logger.debug(
            f"Found path with {len(path)} nodes, {len(route['coordinates'])} after simplification"
        )
        return PathResult(
            path_valid=True,
            grid_path=path,
            waypoints=waypoints,
            route=route,
            start_node=start_node,
            goal_node=goal_node,
        )

    def _astar(self, grid: PlanningGrid, start: int, goal: int) -> Optional[List[int]]:
        """A* pathfinding algorithm."""
        goal_lon, goal_lat = grid.position(goal)

        # Heuristic: Euclidean distance in coordinate units
        def heuristic(i: int) -> float:
            return math.hypot(grid.lons[i] - goal_lon, grid.lats[i] - goal_lat)

        # Priority queue: (f_score, sequence, node)
        # A node's sequence is fixed when it joins the frontier, so equal f_scores
        # resolve to the node that has been waiting longest.
        counter = 0
        sequence = {start: counter}
        g_score = {start: 0}
        f_score = {start: heuristic(start)}
        frontier = {start}
        open_set = [(f_score[start], counter, start)]

        came_from = {}

        while open_set:
            f, seq, current = heapq.heappop(open_set)

            # Stale entry: node left the frontier or was improved since
            if current not in frontier or sequence[current] != seq or f_score[current] != f:
                continue

            if current == goal:
                # Reconstruct path
                path = [current]
                while current in came_from:
                    current = came_from[current]
                    path.append(current)
                return path[::-1]

            frontier.discard(current)

            for neighbor in grid.open_neighbors(current):
                tentative_g = g_score[current] + 1

                if tentative_g < g_score.get(neighbor, math.inf):
                    came_from[neighbor] = current
                    g_score[neighbor] = tentative_g
                    f_score[neighbor] = tentative_g + heuristic(neighbor)

                    if neighbor not in frontier:
                        counter += 1
                        sequence[neighbor] = counter
                        frontier.add(neighbor)
                    heapq.heappush(open_set, (f_score[neighbor], sequence[neighbor], neighbor))

        # No path found
        return None


def plan_alternative_route(
    route_start: Tuple[float, float],
    route_end: Tuple[float, float],
    bbox: BoundingBox,
    zones: Iterable,
    steps: int = GRID_STEPS,
    simplify_tolerance_m: float = ROUTE_SIMPLIFY_TOLERANCE_M,
) -> Optional[dict]:
    """
    Plan a replacement route around restricted zones.

    Only zones are obstacles here; notices and weather never block planning.

    Returns:
        Simplified GeoJSON LineString, or None if no path exists
    """
    pathfinder = GridPathfinder(steps=steps, simplify_tolerance_m=simplify_tolerance_m)
    result = pathfinder.find_path(route_start, route_end, bbox, zones)
    return result.route if result.path_valid else None
