"""Conflict evaluation, replanning and the flight decision pipeline."""

from .conflict_evaluator import ConflictEvaluator, ConflictReport
from .grid_pathfinder import GridPathfinder, PlanningGrid, PathResult, plan_alternative_route
from .decision_pipeline import FlightDecisionPipeline, validate_route

__all__ = [
    "ConflictEvaluator",
    "ConflictReport",
    "GridPathfinder",
    "PlanningGrid",
    "PathResult",
    "plan_alternative_route",
    "FlightDecisionPipeline",
    "validate_route",
]
