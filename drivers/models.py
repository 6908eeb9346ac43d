"""
Purpose: Core data models for the drivers domain.
What it does:
Defines roles, verification states and a snapshot of a driver at a point in
time without relying on Django ORM constraints, so radar and eligibility
rules can be tested on plain objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

LatLon = Tuple[float, float]


class Role(str, Enum):
    CLIENTE = "cliente"
    TAXI = "taxi"
    MANDADITO = "mandadito"
    ADMIN = "admin"


DRIVER_ROLES = (Role.TAXI, Role.MANDADITO)


class ServiceType(str, Enum):
    TAXI = "taxi"
    MOTO_RIDE = "moto_ride"
    MANDADITO = "mandadito"


class KycStatus(str, Enum):
    NOT_SUBMITTED = "not_submitted"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CommissionStatus(str, Enum):
    OK = "ok"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class DriverSnapshot:
    """
    A purely stateless representation of a driver at a specific point in time.
    """
    id: str
    role: Role
    location: Optional[LatLon] = None
    is_available: bool = False
    is_approved: bool = False
    kyc_status: KycStatus = KycStatus.NOT_SUBMITTED
    commission_status: CommissionStatus = CommissionStatus.OK
    municipio: Optional[str] = None

    @classmethod
    def new(
        cls,
        driver_id: str,
        role: str | Role,
        lat: Optional[float] = None,
        lon: Optional[float] = None,
        *,
        is_available: bool = False,
        is_approved: bool = False,
        kyc_status: str | KycStatus = KycStatus.NOT_SUBMITTED,
        commission_status: str | CommissionStatus = CommissionStatus.OK,
        municipio: Optional[str] = None,
    ) -> DriverSnapshot:
        location = (lat, lon) if lat is not None and lon is not None else None
        return cls(
            id=str(driver_id),
            role=Role(role),
            location=location,
            is_available=is_available,
            is_approved=is_approved,
            kyc_status=KycStatus(kyc_status),
            commission_status=CommissionStatus(commission_status),
            municipio=municipio,
        )


@dataclass
class OpenRequest:
    """
    The fields of a service request the radar needs. ORM rows expose the same
    attribute names, so either can be passed to drivers.selection.
    """
    id: str
    service_type: str
    status: str
    origin_lat: Optional[float]
    origin_lng: Optional[float]
    created_at: datetime
    request_expires_at: Optional[datetime] = None
    municipio: Optional[str] = None
