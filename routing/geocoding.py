#Purpose: Address <-> coordinate conversion through Nominatim (OpenStreetMap).
#reverse(): GPS fix -> short human readable address for pickup screens
#search(): free text -> a few candidate places for address pickers
#Nominatim requires a User-Agent and allows about one request per second,
#callers are expected to cache.

from dataclasses import dataclass
from typing import List, Optional
import logging
import os

from dotenv import load_dotenv
import requests

load_dotenv()

DEFAULT_BASE_URL = "https://nominatim.openstreetmap.org"
FALLBACK_SHORT_ADDRESS = "Ubicación detectada"

logger = logging.getLogger(__name__)


class GeocodingError(Exception):
    """Raised by search() when the provider cannot be reached."""
    pass


@dataclass(frozen=True)
class SimpleAddress:
    full: str
    short: str
    street: str
    area: str


@dataclass(frozen=True)
class PlaceSuggestion:
    label: str
    lat: float
    lon: float


class NominatimClient:
    def __init__(self, base_url: Optional[str] = None, user_agent: str = "MoVix-App/1.0", timeout: int = 5):
        self.base_url = (base_url or os.getenv("NOMINATIM_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
        self.user_agent = user_agent
        self.timeout = timeout

    def _get(self, path: str, params: dict) -> requests.Response:
        return requests.get(
            f"{self.base_url}/{path}",
            params=params,
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout,
        )

    def reverse(self, lat: Optional[float], lon: Optional[float]) -> Optional[SimpleAddress]:
        """
        Returns None for missing/zero coordinates and for provider errors,
        the caller just keeps showing raw coordinates in that case.
        """
        if not lat or not lon:
            return None

        try:
            response = self._get("reverse", {"lat": lat, "lon": lon, "format": "json", "addressdetails": 1})
            if not response.ok:
                logger.error(f"Nominatim API error: {response.status_code}")
                return None
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Reverse geocoding error: {e}")
            return None

        address = data.get("address") or {}
        street = address.get("road") or address.get("neighbourhood") or address.get("suburb") or ""
        number = address.get("house_number") or ""
        area = (
            address.get("neighbourhood")
            or address.get("suburb")
            or address.get("city")
            or address.get("town")
            or address.get("village")
            or ""
        )

        short = f"{street} #{number}" if number else (street or area)

        return SimpleAddress(
            full=data.get("display_name", ""),
            short=short or FALLBACK_SHORT_ADDRESS,
            street=street,
            area=area,
        )

    def search(self, query: str, limit: int = 5, country_codes: str = "mx") -> List[PlaceSuggestion]:
        if not query or not query.strip():
            return []

        try:
            response = self._get(
                "search",
                {"q": query.strip(), "format": "json", "limit": limit, "countrycodes": country_codes},
            )
            response.raise_for_status()
            results = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Forward geocoding error: {e}")
            raise GeocodingError(str(e)) from e

        return [
            PlaceSuggestion(label=item.get("display_name", ""), lat=float(item["lat"]), lon=float(item["lon"]))
            for item in results
            if "lat" in item and "lon" in item
        ]
