#Marks routing as a package.
#Re-exports the public APIs (MapboxClient, NominatimClient, SmartRoute, geo helpers)
#so other modules import from routing without knowing internal file names.
#No business logic.

from .geo import (
    RADAR_RADIUS_KM,
    bearing_degrees,
    distance_m,
    distance_to_polyline_m,
    haversine_km,
    interpolate_position,
    is_within_radius,
)
from .geocoding import GeocodingError, NominatimClient, PlaceSuggestion, SimpleAddress
from .gps_filter import GpsFix, TrackingPolicy, default_tracking_policy, validate_fix
from .mapbox_client import MapboxClient, MapboxError, RouteResult
from .route_service import RoutePhase, RouteSnapshot, SmartRoute
from .eta_service import eta_minutes, format_eta

__all__ = [
    "RADAR_RADIUS_KM",
    "bearing_degrees",
    "distance_m",
    "distance_to_polyline_m",
    "haversine_km",
    "interpolate_position",
    "is_within_radius",
    "GeocodingError",
    "NominatimClient",
    "PlaceSuggestion",
    "SimpleAddress",
    "GpsFix",
    "TrackingPolicy",
    "default_tracking_policy",
    "validate_fix",
    "MapboxClient",
    "MapboxError",
    "RouteResult",
    "RoutePhase",
    "RouteSnapshot",
    "SmartRoute",
    "eta_minutes",
    "format_eta",
]
