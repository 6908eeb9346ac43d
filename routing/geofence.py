#Purpose: Radius geofencing for the driver radar.
#Given a driver position and open requests, keep the requests whose origin
#is within the radar radius and attach the straight-line distance.
#Output: a list of "geo-qualified" requests with distance, closest first.
#Straight-line (haversine) on purpose: the radar refreshes every few seconds
#and must not spend a directions API call per request.

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from .geo import RADAR_RADIUS_KM, haversine_km

#internal coordinate type :(lat,lon)
LatLon = Tuple[float, float]


@dataclass(frozen=True)
class GeofenceMatch:
    """
    A request that passed the radius filter.
    item is whatever the caller passed in (ORM row, dataclass, dict wrapper).
    """
    item: Any
    distance_km: float


def geofence_requests(
    center: LatLon,
    items: Sequence[Any],
    origin_of,
    *,
    radius_km: float = RADAR_RADIUS_KM,
) -> List[GeofenceMatch]:
    """
    Args:
        center: (lat, lon) of the driver
        items: requests to filter
        origin_of: callable returning the (lat, lon) origin of an item, or None
        radius_km: radar radius

    Returns:
        List[GeofenceMatch] sorted by distance ascending. Items without an
        origin are dropped (fail closed).
    """
    if not items:
        return []

    matches: List[GeofenceMatch] = []
    for item in items:
        origin: Optional[LatLon] = origin_of(item)
        if origin is None or origin[0] is None or origin[1] is None:
            continue

        distance = haversine_km(center[0], center[1], origin[0], origin[1])
        if distance > radius_km:
            continue

        matches.append(GeofenceMatch(item=item, distance_km=round(distance, 2)))

    matches.sort(key=lambda match: match.distance_km)
    return matches
