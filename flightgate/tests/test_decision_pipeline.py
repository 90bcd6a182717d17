"""
Test the flight decision pipeline end to end against the in-memory store.
"""

import asyncio
from datetime import timedelta

from shapely.geometry import Point, shape

from ..config import DecisionSettings
from ..exceptions import InvalidInput, UpstreamUnavailable
from ..models.airspace import Notice, Zone
from ..models.decision import DecisionOutcome
from ..processing.decision_pipeline import FlightDecisionPipeline, validate_route
from ..storage.memory import InMemoryAirspaceStore
from .samples import (
    COVERING_POLYGON,
    ROUTE,
    U_INNER_POLYGON,
    U_ROUTE,
    WINDOW_END,
    WINDOW_START,
    box_polygon,
    covering_zone,
    soft_notice,
    windy,
)


class ExplodingPathfinder:
    """Stands in for the planner where it must not run."""

    def find_path(self, *args, **kwargs):
        raise AssertionError("planner must not run")


def _decide(pipeline: FlightDecisionPipeline, route=ROUTE, start=WINDOW_START, end=WINDOW_END):
    return asyncio.run(pipeline.decide_flight(
        operator_id="op-17",
        drone_id="drone-3",
        purpose="roof inspection",
        time_start=start,
        time_end=end,
        route=route,
    ))


def test_approved_without_conflicts():
    """Empty airspace approves with no reasons."""
    print("\n=== Testing Approved Decision ===")

    store = InMemoryAirspaceStore()
    decision = _decide(FlightDecisionPipeline(store))

    assert decision.decision == DecisionOutcome.APPROVED
    assert decision.to_response() == {"decision": "approved", "reasons": []}
    assert store.open_sessions == 0
    assert store.sessions_opened == 1

    print("✓ Approved")


def test_rejected_by_zone():
    """A zone covering the corridor rejects with its name."""
    print("\n=== Testing Rejected Decision ===")

    store = InMemoryAirspaceStore(zones=[covering_zone("CTR Schiphol")])
    decision = _decide(FlightDecisionPipeline(store))

    assert decision.to_response() == {
        "decision": "rejected",
        "reasons": [{"code": "AIRSPACE_RESTRICTED", "detail": "CTR Schiphol"}],
    }
    assert store.open_sessions == 0

    print("✓ Rejected")


def test_alternative_for_soft_notice():
    """A soft notice alone yields an alternative route."""
    print("\n=== Testing Alternative Decision ===")

    store = InMemoryAirspaceStore(notices=[soft_notice("Crane works Sloterdijk")])
    decision = _decide(FlightDecisionPipeline(store))

    response = decision.to_response()
    assert response["decision"] == "alternative"
    assert response["reasons"] == [{"code": "NOTAM_SOFT", "detail": "Crane works Sloterdijk"}]
    route = response["alternativeRoute"]
    assert route["type"] == "LineString"
    assert len(route["coordinates"]) >= 2
    assert store.open_sessions == 0

    print("✓ Alternative")


def test_notices_do_not_block_planning():
    """The soft notice covers the whole grid yet the planner still succeeds."""
    print("\n=== Testing Notices Are Not Obstacles ===")

    hard_elsewhere = Notice(
        title="Far away",
        geometry=box_polygon(10.0, 45.0, 10.1, 45.1),
        start=WINDOW_START,
    )
    store = InMemoryAirspaceStore(notices=[soft_notice(), hard_elsewhere], weather=[windy(30)])
    decision = _decide(FlightDecisionPipeline(store))

    assert decision.decision == DecisionOutcome.ALTERNATIVE
    assert [r.code for r in decision.reasons] == ["NOTAM_SOFT", "WEATHER_WIND"]
    coords = decision.alternative_route.coordinates
    assert len(coords) == 2
    assert abs(coords[0][0] - 4.80) < 1e-9 and abs(coords[-1][1] - 52.35) < 1e-9

    print("✓ Notices ignored by planner")


def test_alternative_avoids_zone():
    """Zones outside the corridor still shape the alternative route."""
    print("\n=== Testing Detour Decision ===")

    store = InMemoryAirspaceStore(
        zones=[Zone(name="Inner park", geometry=U_INNER_POLYGON)],
        notices=[soft_notice()],
    )
    decision = _decide(FlightDecisionPipeline(store), route=U_ROUTE)

    assert decision.decision == DecisionOutcome.ALTERNATIVE
    polygon = shape(U_INNER_POLYGON)
    for lon, lat in decision.alternative_route.coordinates:
        assert not polygon.contains(Point(lon, lat))

    print("✓ Alternative avoids zone")


def test_rejected_when_planner_fails():
    """No path on the grid rejects with the advisory reasons."""
    print("\n=== Testing Planner Failure ===")

    # Blocks every neighbour of the start node on a 3x3 grid, clear of the corridor
    zones = [
        Zone(name="East", geometry=box_polygon(0.45, -0.05, 0.55, 0.05)),
        Zone(name="North", geometry=box_polygon(-0.03, 0.45, 0.03, 0.55)),
        Zone(name="Centre", geometry=box_polygon(0.45, 0.45, 0.55, 0.55)),
    ]
    notice = Notice(
        title="Survey flights",
        severity="soft",
        geometry=box_polygon(-0.1, -0.1, 1.1, 1.1),
        start=WINDOW_START,
    )
    store = InMemoryAirspaceStore(zones=zones, notices=[notice])
    pipeline = FlightDecisionPipeline(store, DecisionSettings(grid_steps=2))

    route = {"type": "LineString", "coordinates": [[0, 0], [0.1, 0.9], [1, 1]]}
    decision = _decide(pipeline, route=route)

    assert decision.to_response() == {
        "decision": "rejected",
        "reasons": [{"code": "NOTAM_SOFT", "detail": "Survey flights"}],
    }
    assert store.open_sessions == 0

    print("✓ Planner failure rejects")


def test_blocking_skips_planner():
    """Blocking conflicts reject without planning, dropping advisory reasons."""
    print("\n=== Testing Blocking Dominance ===")

    hard = Notice(title="Airshow", geometry=COVERING_POLYGON, start=WINDOW_START)
    store = InMemoryAirspaceStore(
        zones=[covering_zone()],
        notices=[soft_notice(), hard],
        weather=[windy(40)],
    )
    pipeline = FlightDecisionPipeline(store)
    pipeline.pathfinder = ExplodingPathfinder()

    decision = _decide(pipeline)
    assert decision.decision == DecisionOutcome.REJECTED
    assert [(r.code, r.detail) for r in decision.reasons] == [
        ("AIRSPACE_RESTRICTED", "CTR Schiphol"),
        ("NOTAM_HARD", "Airshow"),
    ]

    print("✓ Planner skipped")


def test_invalid_input_before_store_access():
    """Bad routes and windows fail before a session is opened."""
    print("\n=== Testing Input Validation ===")

    store = InMemoryAirspaceStore()
    pipeline = FlightDecisionPipeline(store)

    bad_routes = [
        None,
        "LINESTRING (4.8 52.3, 4.9 52.35)",
        {"type": "Point", "coordinates": [4.8, 52.3]},
        {"type": "LineString", "coordinates": [[4.8, 52.3]]},
        {"type": "LineString", "coordinates": [[4.8, 52.3], [200, 52.35]]},
        {"type": "LineString", "coordinates": [[4.8, 52.3], ["east", "north"]]},
    ]
    for route in bad_routes:
        try:
            _decide(pipeline, route=route)
        except InvalidInput:
            pass
        else:
            raise AssertionError(f"expected InvalidInput for {route!r}")

    try:
        _decide(pipeline, start=WINDOW_END, end=WINDOW_START)
    except InvalidInput:
        pass
    else:
        raise AssertionError("expected InvalidInput for reversed window")

    assert store.sessions_opened == 0

    print("✓ Invalid input rejected before store access")


def test_validate_route_drops_altitude():
    """Extra ordinates are accepted and dropped."""
    print("\n=== Testing Route Validation ===")

    line = validate_route({"type": "LineString", "coordinates": [[4.8, 52.3, 120], [4.9, 52.35, 80]]})
    assert line.coordinates == [[4.8, 52.3], [4.9, 52.35]]
    assert line.start == (4.8, 52.3)
    assert line.end == (4.9, 52.35)
    assert validate_route(line) is line

    print("✓ Route validation works")


def test_zero_length_window():
    """A window with start equal to end is valid."""
    print("\n=== Testing Instant Window ===")

    store = InMemoryAirspaceStore(zones=[covering_zone(valid_from=WINDOW_START)])
    decision = _decide(FlightDecisionPipeline(store), start=WINDOW_START, end=WINDOW_START)
    assert decision.decision == DecisionOutcome.REJECTED

    print("✓ Instant window accepted")


def test_naive_times_are_utc():
    """Naive request times compare against aware record times as UTC."""
    print("\n=== Testing Naive Times ===")

    store = InMemoryAirspaceStore(zones=[covering_zone(valid_to=WINDOW_START - timedelta(minutes=5))])
    naive_start = WINDOW_START.replace(tzinfo=None)
    naive_end = WINDOW_END.replace(tzinfo=None)
    decision = _decide(FlightDecisionPipeline(store), start=naive_start, end=naive_end)
    assert decision.decision == DecisionOutcome.APPROVED

    print("✓ Naive times treated as UTC")


def test_store_outage():
    """Store failures propagate as UpstreamUnavailable and release the session."""
    print("\n=== Testing Store Outage ===")

    store = InMemoryAirspaceStore()
    store.fail_with = "connection refused"

    try:
        _decide(FlightDecisionPipeline(store))
    except UpstreamUnavailable as e:
        assert "connection refused" in str(e)
        assert e.source == "memory"
    else:
        raise AssertionError("expected UpstreamUnavailable")

    assert store.sessions_opened == 1
    assert store.open_sessions == 0

    print("✓ Outage surfaces as UpstreamUnavailable")


def test_pipeline_is_stateless():
    """Repeated calls give the same answer."""
    print("\n=== Testing Repeatability ===")

    store = InMemoryAirspaceStore(notices=[soft_notice()])
    pipeline = FlightDecisionPipeline(store)

    first = _decide(pipeline).to_response()
    second = _decide(pipeline).to_response()
    assert first == second
    assert store.sessions_opened == 2
    assert store.open_sessions == 0

    print("✓ Repeatable")


def run_all_tests():
    """Run all decision pipeline tests."""
    print("\n" + "=" * 60)
    print("DECISION PIPELINE - TEST SUITE")
    print("=" * 60)

    test_approved_without_conflicts()
    test_rejected_by_zone()
    test_alternative_for_soft_notice()
    test_notices_do_not_block_planning()
    test_alternative_avoids_zone()
    test_rejected_when_planner_fails()
    test_blocking_skips_planner()
    test_invalid_input_before_store_access()
    test_validate_route_drops_altitude()
    test_zero_length_window()
    test_naive_times_are_utc()
    test_store_outage()
    test_pipeline_is_stateless()

    print("\n" + "=" * 60)
    print("✅ ALL DECISION PIPELINE TESTS PASSED!")
    print("=" * 60)


if __name__ == "__main__":
    run_all_tests()
