"""
Purpose: Central configuration for the driver side of the marketplace.
What it does:

Stores all tunable thresholds for the radar and request/offer lifetimes:

RADAR_RADIUS_KM = 5
REQUEST_EXPIRY_SECONDS = {taxi: 40, moto_ride: 40, mandadito: 110}
OFFER_EXPIRY_SECONDS = 300

Rule: no logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict

from routing.geo import RADAR_RADIUS_KM


@dataclass(frozen=True)
class DriverPolicy:
    """
    Central configuration for radar and negotiation timings.
    """

    # --- Radar ---
    # Straight-line radius around the driver in which open requests are listed.
    radar_radius_km: float = RADAR_RADIUS_KM

    # MVP runs in a single municipality, requests outside it are never listed.
    default_municipio: str = "Venustiano Carranza"

    # --- Request lifetime ---
    # How long a request stays on the radar waiting for offers.
    request_expiry_seconds: Dict[str, int] = field(
        default_factory=lambda: {"taxi": 40, "moto_ride": 40, "mandadito": 110}
    )

    # Pending requests older than this are swept to cancelled by expire_requests.
    stale_request_seconds: int = 3600

    # --- Offers ---
    offer_expiry_seconds: int = 300

    def expiry_for(self, service_type: str) -> int:
        return self.request_expiry_seconds.get(str(service_type), max(self.request_expiry_seconds.values()))

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.radar_radius_km <= 0:
            raise ValueError("radar_radius_km must be > 0")

        if not self.request_expiry_seconds or any(v <= 0 for v in self.request_expiry_seconds.values()):
            raise ValueError("request_expiry_seconds must define positive expiries")

        if self.offer_expiry_seconds <= 0:
            raise ValueError("offer_expiry_seconds must be > 0")

        if self.stale_request_seconds <= 0:
            raise ValueError("stale_request_seconds must be > 0")


def default_driver_policy() -> DriverPolicy:
    """
    Convenience factory for the default policy.
    """
    p = DriverPolicy()
    p.validate()
    return p
