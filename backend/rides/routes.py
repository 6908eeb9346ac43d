"""
Live route of an active service, shared by the driver and client screens.

SmartRoute instances are kept per (driver, service) in this process so the
directions API is only called when the route really needs refreshing.
"""

import threading

from django.conf import settings

from dispatch.state_machines.request_state import STEP_IN_TRANSIT, STEP_PICKED_UP
from routing.mapbox_client import MapboxClient
from routing.route_service import RoutePhase, SmartRoute

_routes = {}
_lock = threading.Lock()


def phase_for(service):
    if service.tracking_step in (STEP_PICKED_UP, STEP_IN_TRANSIT):
        return RoutePhase.TRIP
    return RoutePhase.PICKUP


def _smart_route_for(key, route_client):
    with _lock:
        smart = _routes.get(key)
        if smart is None:
            smart = SmartRoute(route_client or MapboxClient(access_token=settings.MAPBOX_ACCESS_TOKEN))
            _routes[key] = smart
        return smart


def current_route(service, driver_position, route_client=None, now=None):
    """
    Returns (phase, RouteSnapshot). Raises MapboxError when the provider
    fails and ValueError when no access token is configured.
    """
    key = (service.assigned_driver_id, service.pk)
    origin = (service.origin_lat, service.origin_lng)
    destination = None
    if service.destination_lat is not None and service.destination_lng is not None:
        destination = (service.destination_lat, service.destination_lng)

    phase = phase_for(service)
    smart = _smart_route_for(key, route_client)
    return phase, smart.update(driver_position, origin, destination, phase, now)


def forget(service_id):
    with _lock:
        for key in [key for key in _routes if key[1] == service_id]:
            del _routes[key]
