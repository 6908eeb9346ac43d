"""
Purpose: Sanity filtering for driver GPS pings.
What it does:
Rejects fixes that are too inaccurate or that imply an impossible speed,
and decides whether a fix moved far enough to be worth persisting or to
recompute the heading.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from .geo import bearing_degrees, distance_m


@dataclass(frozen=True)
class TrackingPolicy:
    """
    Thresholds for live tracking.
    """
    max_accuracy_m: float = 40
    max_speed_kmh: float = 140
    min_movement_m: float = 5

    # Route recalculation
    reroute_interval_s: float = 30
    off_route_m: float = 70

    def validate(self) -> None:
        if self.max_accuracy_m <= 0:
            raise ValueError("max_accuracy_m must be > 0")
        if self.max_speed_kmh <= 0:
            raise ValueError("max_speed_kmh must be > 0")
        if self.min_movement_m < 0:
            raise ValueError("min_movement_m must be >= 0")
        if self.reroute_interval_s <= 0:
            raise ValueError("reroute_interval_s must be > 0")


def default_tracking_policy() -> TrackingPolicy:
    p = TrackingPolicy()
    p.validate()
    return p


@dataclass(frozen=True)
class GpsFix:
    lat: float
    lon: float
    timestamp: datetime
    accuracy: Optional[float] = None
    heading: Optional[float] = None
    speed: Optional[float] = None

    @property
    def coordinates(self) -> Tuple[float, float]:
        return (self.lat, self.lon)


def validate_fix(
    new: GpsFix,
    last: Optional[GpsFix],
    policy: Optional[TrackingPolicy] = None,
) -> Tuple[bool, Optional[str]]:
    """
    Returns (valid, reason). reason is None for valid fixes.
    """
    policy = policy or default_tracking_policy()

    if new.accuracy is not None and new.accuracy > policy.max_accuracy_m:
        return False, f"Accuracy too low: {new.accuracy}m"

    if last is not None:
        elapsed_s = (new.timestamp - last.timestamp).total_seconds()
        if elapsed_s > 0:
            speed_kmh = (distance_m(last.coordinates, new.coordinates) / elapsed_s) * 3.6
            if speed_kmh > policy.max_speed_kmh:
                return False, f"Impossible speed: {speed_kmh:.0f}km/h"

    return True, None


def should_persist(new: GpsFix, last: Optional[GpsFix], policy: Optional[TrackingPolicy] = None) -> bool:
    policy = policy or default_tracking_policy()
    if last is None:
        return True
    return distance_m(last.coordinates, new.coordinates) >= policy.min_movement_m


def next_bearing(
    new: GpsFix,
    last: Optional[GpsFix],
    previous_bearing: Optional[float],
    policy: Optional[TrackingPolicy] = None,
) -> Optional[float]:
    """
    Heading is only recomputed after real movement, otherwise GPS jitter
    spins the marker around while the vehicle is stopped.
    """
    policy = policy or default_tracking_policy()
    if last is None:
        return previous_bearing if previous_bearing is not None else new.heading
    if distance_m(last.coordinates, new.coordinates) < policy.min_movement_m:
        return previous_bearing
    return bearing_degrees(last.coordinates, new.coordinates)
