#Purpose: The Mapbox Directions "adapter/client".
#Sole responsibility: talk to Mapbox via HTTP and return normalized outputs.
#Encapsulates Mapbox-specific details:
#coordinate formatting (lon,lat)
#URL construction (/directions/v5/mapbox/<profile>/...)
#access token + timeouts
#parsing response JSON into RouteResult
#It should not contain tracking or dispatch rules.

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import logging
import os

from dotenv import load_dotenv
import requests

# Example in .env:
# MAPBOX_ACCESS_TOKEN=pk.xxx
# MAPBOX_BASE_URL=https://api.mapbox.com
load_dotenv()

DEFAULT_BASE_URL = "https://api.mapbox.com"

# Internal coordinate type: (lat, lon)
LatLon = Tuple[float, float]

logger = logging.getLogger(__name__)


class MapboxError(Exception):
    """Raised when Mapbox answers with an error code or no route."""
    pass


@dataclass(frozen=True)
class RouteResult:
    geometry: Dict[str, Any]  # GeoJSON LineString
    duration_s: float
    distance_m: float

    @property
    def coordinates(self) -> List[List[float]]:
        return self.geometry.get("coordinates", [])


class MapboxClient:
    """
    Mapbox Directions adapter.

    - Converts internal (lat, lon) to Mapbox (lon,lat)
    - Always asks for GeoJSON geometry so the route can be drawn
    """
    def __init__(
        self,
        access_token: Optional[str] = None,
        base_url: Optional[str] = None,
        profile: str = "driving",
        timeout: int = 5,
    ):
        self.access_token = access_token or os.getenv("MAPBOX_ACCESS_TOKEN")
        self.base_url = (base_url or os.getenv("MAPBOX_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
        self.profile = profile
        self.timeout = timeout

        if not self.access_token:
            raise ValueError("Mapbox access token not set. Please set MAPBOX_ACCESS_TOKEN in the .env file.")

    def format_coordinates(self, coords: List[LatLon]) -> str:
        """Convert list of (lat, lon) to 'lon,lat;lon,lat;...'"""
        return ";".join(f"{lon},{lat}" for lat, lon in coords)

    def compute_route(self, start: LatLon, end: LatLon) -> RouteResult:
        """
        Calls the directions endpoint for a single start -> end leg.
        """
        coordinates = self.format_coordinates([start, end])
        url = f"{self.base_url}/directions/v5/mapbox/{self.profile}/{coordinates}"

        try:
            response = requests.get(
                url,
                params={
                    "geometries": "geojson",
                    "access_token": self.access_token,
                },
                timeout=self.timeout,
            )
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Mapbox request failed: {e}")
            raise MapboxError(f"Mapbox request failed: {e}") from e

        if data.get("code") != "Ok":
            raise MapboxError(f"Mapbox error: {data.get('message', data.get('code', 'Unknown error'))}")

        routes = data.get("routes") or []
        if not routes:
            raise MapboxError("Mapbox returned no routes")

        route = routes[0]
        return RouteResult(
            geometry=route["geometry"],
            duration_s=float(route["duration"]),
            distance_m=float(route["distance"]),
        )
