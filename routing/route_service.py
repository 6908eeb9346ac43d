"""
Purpose: "Smart route" for an active service.
What it does:
Keeps the last computed route for a driver and decides when it is worth
calling the directions API again:
- no route yet
- the phase changed (going to pickup -> trip to destination)
- the reroute interval elapsed
- the driver drifted too far from the route polyline

Uses the directions client's compute_route (not the geocoder).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol, Tuple

from .eta_service import eta_minutes
from .geo import distance_to_polyline_m
from .gps_filter import TrackingPolicy, default_tracking_policy
from .mapbox_client import RouteResult

LatLon = Tuple[float, float]


class RoutePhase(str, Enum):
    PICKUP = "pickup"  # driver -> client origin
    TRIP = "trip"  # driver -> destination


class RouteClient(Protocol):
    def compute_route(self, start: LatLon, end: LatLon) -> RouteResult: ...


@dataclass(frozen=True)
class RouteSnapshot:
    route: RouteResult
    eta_minutes: int
    distance_km: float
    is_off_route: bool
    recalculated: bool


def target_for_phase(phase: RoutePhase, origin: LatLon, destination: Optional[LatLon]) -> LatLon:
    if phase == RoutePhase.TRIP and destination is not None:
        return destination
    return origin


class SmartRoute:
    """
    One instance per (driver, service) being tracked.
    """
    def __init__(self, route_client: RouteClient, policy: Optional[TrackingPolicy] = None):
        self.route_client = route_client
        self.policy = policy or default_tracking_policy()
        self.route: Optional[RouteResult] = None
        self.phase: Optional[RoutePhase] = None
        self.last_calculated: Optional[datetime] = None

    def is_off_route(self, driver_position: LatLon) -> bool:
        if self.route is None:
            return False
        return distance_to_polyline_m(driver_position, self.route.coordinates) > self.policy.off_route_m

    def needs_recalculation(self, driver_position: LatLon, phase: RoutePhase, now: datetime) -> bool:
        if self.route is None or self.last_calculated is None:
            return True
        if phase != self.phase:
            return True
        if (now - self.last_calculated).total_seconds() >= self.policy.reroute_interval_s:
            return True
        return self.is_off_route(driver_position)

    def update(
        self,
        driver_position: LatLon,
        origin: LatLon,
        destination: Optional[LatLon],
        phase: RoutePhase,
        now: Optional[datetime] = None,
    ) -> RouteSnapshot:
        now = now or datetime.now()
        off_route = self.is_off_route(driver_position)
        recalculated = False

        if self.needs_recalculation(driver_position, phase, now):
            target = target_for_phase(phase, origin, destination)
            self.route = self.route_client.compute_route(driver_position, target)
            self.phase = phase
            self.last_calculated = now
            recalculated = True
            off_route = False

        return RouteSnapshot(
            route=self.route,
            eta_minutes=eta_minutes(self.route.duration_s),
            distance_km=round(self.route.distance_m / 1000, 2),
            is_off_route=off_route,
            recalculated=recalculated,
        )
