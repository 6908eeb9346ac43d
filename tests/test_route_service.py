from datetime import datetime, timedelta

import pytest

from routing.eta_service import eta_minutes, format_eta
from routing.mapbox_client import RouteResult
from routing.route_service import RoutePhase, SmartRoute, target_for_phase

T0 = datetime(2026, 3, 2, 12, 0, 0)

DRIVER = (19.4300, -99.1300)
ORIGIN = (19.4350, -99.1300)
DESTINATION = (19.4500, -99.1400)


class MockDirections:
    """
    Straight two-point route between start and end, records every call.
    """
    def __init__(self, duration_s=300, distance_m=2500):
        self.calls = []
        self.duration_s = duration_s
        self.distance_m = distance_m

    def compute_route(self, start, end):
        self.calls.append((start, end))
        return RouteResult(
            geometry={"type": "LineString", "coordinates": [[start[1], start[0]], [end[1], end[0]]]},
            duration_s=self.duration_s,
            distance_m=self.distance_m,
        )


def test_target_for_phase():
    assert target_for_phase(RoutePhase.PICKUP, ORIGIN, DESTINATION) == ORIGIN
    assert target_for_phase(RoutePhase.TRIP, ORIGIN, DESTINATION) == DESTINATION
    # no destination falls back to origin
    assert target_for_phase(RoutePhase.TRIP, ORIGIN, None) == ORIGIN


def test_first_update_computes_route():
    directions = MockDirections(duration_s=301, distance_m=2346)
    smart = SmartRoute(directions)

    snapshot = smart.update(DRIVER, ORIGIN, DESTINATION, RoutePhase.PICKUP, now=T0)

    assert directions.calls == [(DRIVER, ORIGIN)]
    assert snapshot.recalculated
    assert snapshot.eta_minutes == 6
    assert snapshot.distance_km == 2.35
    assert not snapshot.is_off_route


def test_reuses_route_within_interval_and_on_route():
    directions = MockDirections()
    smart = SmartRoute(directions)
    smart.update(DRIVER, ORIGIN, DESTINATION, RoutePhase.PICKUP, now=T0)

    # Moving along the route, 10 s later
    on_route = (19.4320, -99.1300)
    snapshot = smart.update(on_route, ORIGIN, DESTINATION, RoutePhase.PICKUP, now=T0 + timedelta(seconds=10))

    assert len(directions.calls) == 1
    assert not snapshot.recalculated


def test_recalculates_after_interval():
    directions = MockDirections()
    smart = SmartRoute(directions)
    smart.update(DRIVER, ORIGIN, DESTINATION, RoutePhase.PICKUP, now=T0)

    smart.update(DRIVER, ORIGIN, DESTINATION, RoutePhase.PICKUP, now=T0 + timedelta(seconds=30))
    assert len(directions.calls) == 2


def test_recalculates_on_phase_change():
    directions = MockDirections()
    smart = SmartRoute(directions)
    smart.update(DRIVER, ORIGIN, DESTINATION, RoutePhase.PICKUP, now=T0)

    smart.update(ORIGIN, ORIGIN, DESTINATION, RoutePhase.TRIP, now=T0 + timedelta(seconds=5))
    assert directions.calls[-1] == (ORIGIN, DESTINATION)


def test_recalculates_when_off_route():
    directions = MockDirections()
    smart = SmartRoute(directions)
    smart.update(DRIVER, ORIGIN, DESTINATION, RoutePhase.PICKUP, now=T0)

    # ~500 m east of the north-south route
    drifted = (19.4320, -99.1252)
    assert smart.is_off_route(drifted)

    snapshot = smart.update(drifted, ORIGIN, DESTINATION, RoutePhase.PICKUP, now=T0 + timedelta(seconds=5))
    assert snapshot.recalculated
    assert directions.calls[-1] == (drifted, ORIGIN)


@pytest.mark.parametrize("duration_s,expected", [(0, 0), (-5, 0), (1, 1), (60, 1), (61, 2), (3600, 60)])
def test_eta_minutes(duration_s, expected):
    assert eta_minutes(duration_s) == expected


def test_format_eta():
    assert format_eta(0) == "< 1 min"
    assert format_eta(12) == "12 min"
    assert format_eta(75) == "1 h 15 min"
