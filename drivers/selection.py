"""
Purpose: Business rules deciding what a driver may do and what they see.
What it does:
- eligibility gates (role, KYC, commission block)
- the radar: open requests of the driver's service types, inside the
  municipality and the radar radius, newest first
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Sequence

from routing.geofence import geofence_requests

from .models import CommissionStatus, DRIVER_ROLES, DriverSnapshot, KycStatus, Role, ServiceType
from .policy import DriverPolicy, default_driver_policy


def is_driver(role) -> bool:
    return role in DRIVER_ROLES


def can_operate(driver: DriverSnapshot) -> bool:
    """
    A driver can take jobs only once KYC is approved and while they are not
    blocked for unpaid commissions.
    """
    if not is_driver(driver.role):
        return False
    if driver.kyc_status != KycStatus.APPROVED:
        return False
    return driver.commission_status != CommissionStatus.BLOCKED


def can_toggle_available(driver: DriverSnapshot) -> bool:
    return can_operate(driver)


def service_types_for_role(role) -> List[str]:
    """
    Moto drivers registered as mandadito also carry passengers (moto_ride).
    """
    if role == Role.TAXI:
        return [ServiceType.TAXI.value]
    if role == Role.MANDADITO:
        return [ServiceType.MANDADITO.value, ServiceType.MOTO_RIDE.value]
    return []


@dataclass(frozen=True)
class RadarEntry:
    request: Any
    distance_km: Optional[float]


def is_request_open(request, now: datetime) -> bool:
    if request.status != "pending":
        return False
    expires_at = request.request_expires_at
    return expires_at is None or expires_at > now


def build_radar(
    driver: DriverSnapshot,
    requests: Sequence[Any],
    now: datetime,
    policy: Optional[DriverPolicy] = None,
) -> List[RadarEntry]:
    """
    Returns the requests the driver should see on the radar.

    Sorted newest first (the radar is a feed), each entry carries the straight
    line distance from the driver to the request origin when the driver has a
    location.
    """
    policy = policy or default_driver_policy()

    service_types = service_types_for_role(driver.role)
    municipio = driver.municipio or policy.default_municipio

    open_requests = [
        request for request in requests
        if request.service_type in service_types
        and is_request_open(request, now)
        and (request.municipio is None or request.municipio == municipio)
    ]

    if driver.location is None:
        entries = [RadarEntry(request=request, distance_km=None) for request in open_requests]
    else:
        matches = geofence_requests(
            driver.location,
            open_requests,
            lambda request: (request.origin_lat, request.origin_lng),
            radius_km=policy.radar_radius_km,
        )
        entries = [RadarEntry(request=match.item, distance_km=match.distance_km) for match in matches]

    entries.sort(key=lambda entry: entry.request.created_at, reverse=True)
    return entries
