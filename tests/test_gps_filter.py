from datetime import datetime, timedelta

import pytest

from routing.gps_filter import (
    GpsFix,
    TrackingPolicy,
    default_tracking_policy,
    next_bearing,
    should_persist,
    validate_fix,
)

T0 = datetime(2026, 3, 2, 12, 0, 0)


def fix(lat, lon, seconds=0, accuracy=None, heading=None):
    return GpsFix(lat=lat, lon=lon, timestamp=T0 + timedelta(seconds=seconds), accuracy=accuracy, heading=heading)


def test_default_policy_values():
    policy = default_tracking_policy()
    assert policy.max_accuracy_m == 40
    assert policy.max_speed_kmh == 140
    assert policy.min_movement_m == 5
    assert policy.reroute_interval_s == 30
    assert policy.off_route_m == 70


def test_policy_validate_rejects_bad_values():
    with pytest.raises(ValueError):
        TrackingPolicy(max_accuracy_m=0).validate()


def test_rejects_low_accuracy():
    valid, reason = validate_fix(fix(19.43, -99.13, accuracy=85), None)
    assert not valid
    assert reason.startswith("Accuracy too low")


def test_rejects_impossible_speed():
    last = fix(19.43, -99.13)
    # ~1.1 km in 10 s is ~400 km/h
    new = fix(19.44, -99.13, seconds=10)

    valid, reason = validate_fix(new, last)
    assert not valid
    assert reason.startswith("Impossible speed")


def test_accepts_plausible_movement_and_same_timestamp():
    last = fix(19.43, -99.13)
    assert validate_fix(fix(19.4305, -99.13, seconds=30, accuracy=10), last) == (True, None)
    # zero time delta skips the speed check
    assert validate_fix(fix(19.44, -99.13, seconds=0), last)[0]


def test_should_persist_only_on_real_movement():
    last = fix(19.43, -99.13)
    assert should_persist(fix(19.43, -99.13), None)
    assert not should_persist(fix(19.43001, -99.13, seconds=5), last)   # ~1 m
    assert should_persist(fix(19.4301, -99.13, seconds=5), last)        # ~11 m


def test_next_bearing_keeps_previous_while_stopped():
    last = fix(19.43, -99.13)

    assert next_bearing(fix(19.43001, -99.13, seconds=5), last, 123.0) == 123.0

    moved = next_bearing(fix(19.4301, -99.13, seconds=5), last, 123.0)
    assert moved == pytest.approx(0, abs=0.5)

    # first fix falls back to the device heading
    assert next_bearing(fix(19.43, -99.13, heading=45.0), None, None) == 45.0
