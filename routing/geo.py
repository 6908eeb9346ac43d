#Purpose: Plain geometry helpers shared by radar, tracking and routing.
#Great-circle distances, bearings and linear interpolation between GPS fixes.
#No HTTP calls here, only math on (lat, lon) tuples.

import math
from typing import List, Sequence, Tuple

#internal coordinate type :(lat,lon)
LatLon = Tuple[float, float]

EARTH_RADIUS_KM = 6371.0

RADAR_RADIUS_KM = 5
TRACKING_UPDATE_INTERVAL_MS = 10000
AVAILABLE_UPDATE_INTERVAL_MS = 60000
MIN_DISTANCE_UPDATE_METERS = 20


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometers."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_m(a: LatLon, b: LatLon) -> float:
    return haversine_km(a[0], a[1], b[0], b[1]) * 1000


def is_within_radius(center: LatLon, target: LatLon, radius_km: float) -> bool:
    return haversine_km(center[0], center[1], target[0], target[1]) <= radius_km


def bearing_degrees(start: LatLon, end: LatLon) -> float:
    """
    Initial bearing from start to end, normalized to [0, 360).
    Used to rotate the vehicle icon on the client.
    """
    start_lat = math.radians(start[0])
    end_lat = math.radians(end[0])
    d_lon = math.radians(end[1] - start[1])

    x = math.sin(d_lon) * math.cos(end_lat)
    y = math.cos(start_lat) * math.sin(end_lat) - math.sin(start_lat) * math.cos(end_lat) * math.cos(d_lon)

    return (math.degrees(math.atan2(x, y)) + 360) % 360


def interpolate_position(start: LatLon, end: LatLon, fraction: float) -> LatLon:
    """Linear interpolation between two fixes. fraction is clamped to [0, 1]."""
    fraction = max(0.0, min(1.0, fraction))
    return (
        start[0] + (end[0] - start[0]) * fraction,
        start[1] + (end[1] - start[1]) * fraction,
    )


def _distance_to_segment_m(point: LatLon, seg_start: LatLon, seg_end: LatLon) -> float:
    # projection is done in degree space, the final distance is haversine
    d_lat = seg_end[0] - seg_start[0]
    d_lon = seg_end[1] - seg_start[1]

    if d_lat == 0 and d_lon == 0:
        return distance_m(point, seg_start)

    t = ((point[1] - seg_start[1]) * d_lon + (point[0] - seg_start[0]) * d_lat) / (d_lon * d_lon + d_lat * d_lat)
    t = max(0.0, min(1.0, t))

    closest = (seg_start[0] + t * d_lat, seg_start[1] + t * d_lon)
    return distance_m(point, closest)


def distance_to_polyline_m(point: LatLon, polyline: Sequence[Sequence[float]]) -> float:
    """
    Minimum distance in meters from a point to a polyline.

    The polyline uses GeoJSON ordering ([lon, lat] pairs), which is what the
    directions API returns.
    """
    if not polyline:
        return math.inf

    vertices: List[LatLon] = [(lat, lon) for lon, lat in polyline]

    if len(vertices) == 1:
        return distance_m(point, vertices[0])

    return min(
        _distance_to_segment_m(point, vertices[i], vertices[i + 1])
        for i in range(len(vertices) - 1)
    )
