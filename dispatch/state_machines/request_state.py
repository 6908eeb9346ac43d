r"""
Lifecycle of a service request.

status:        pending -> assigned -> in_progress -> completed
                  \-----------\-----------\------> cancelled

tracking_step: accepted -> on_the_way -> nearby -> arrived -> picked_up -> in_transit -> completed

The functions mutate the given object (ORM row or dataclass) and leave the
save to the caller.
"""

from datetime import datetime
from typing import Optional

PENDING = "pending"
ASSIGNED = "assigned"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
CANCELLED = "cancelled"

FINAL_STATUSES = (COMPLETED, CANCELLED)

ALLOWED_TRANSITIONS = {
    PENDING: (ASSIGNED, CANCELLED),
    ASSIGNED: (IN_PROGRESS, CANCELLED),
    IN_PROGRESS: (COMPLETED, CANCELLED),
    COMPLETED: (),
    CANCELLED: (),
}

TRACKING_STEPS = ["accepted", "on_the_way", "nearby", "arrived", "picked_up", "in_transit"]
STEP_COMPLETED = "completed"
STEP_PICKED_UP = "picked_up"
STEP_IN_TRANSIT = "in_transit"

DRIVER_CANCEL_PREFIX = "Cancelado por conductor: "
CLIENT_CANCEL_REASON = "Cancelado por usuario"
EXPIRED_REASON = "Expirado automáticamente"

DRIVER_CANCELLATION_REASONS = {
    "out_of_route": "Fuera de mi ruta",
    "client_no_response": "Cliente no responde",
    "vehicle_issue": "Problema con el vehículo",
    "emergency": "Emergencia personal",
    "other": "Otro motivo",
}


class RequestStateException(Exception):
    """Raised when an invalid state transition is attempted."""
    pass


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, ())


def _transition(request, target: str) -> None:
    if not can_transition(request.status, target):
        raise RequestStateException(f"Cannot move request {request.id} from {request.status} to {target}")
    request.status = target


def assign_driver(request, driver_id, final_price, now: datetime):
    """
    Called once an offer is accepted. The request leaves the radar.
    """
    _transition(request, ASSIGNED)
    request.assigned_driver_id = driver_id
    request.final_price = final_price
    request.tracking_step = TRACKING_STEPS[0]
    request.assigned_at = now
    return request


def next_tracking_step(current: Optional[str]) -> Optional[str]:
    """
    Step that follows current. None once in_transit is reached (only
    completion is left) or when the request already completed.
    """
    if current == STEP_COMPLETED:
        return None
    if current not in TRACKING_STEPS:
        return TRACKING_STEPS[0]
    index = TRACKING_STEPS.index(current)
    if index == len(TRACKING_STEPS) - 1:
        return None
    return TRACKING_STEPS[index + 1]


def advance_tracking(request, now: datetime, *, pin_validated: bool = False):
    """
    Moves the request to its next tracking step.

    Passenger services (taxi, moto_ride) only reach picked_up through a
    validated boarding PIN.
    """
    if request.status not in (ASSIGNED, IN_PROGRESS):
        raise RequestStateException(f"Request {request.id} is not active. Current: {request.status}")

    step = next_tracking_step(request.tracking_step)
    if step is None:
        raise RequestStateException(f"Request {request.id} has no further tracking steps")

    if step == STEP_PICKED_UP and requires_boarding_pin(request.service_type) and not pin_validated:
        raise RequestStateException("Boarding PIN required to start the trip")

    request.tracking_step = step
    if step == STEP_PICKED_UP:
        start_trip(request, now)
    return request


def start_trip(request, now: datetime):
    if request.status == ASSIGNED:
        _transition(request, IN_PROGRESS)
    request.tracking_step = STEP_PICKED_UP
    request.started_at = now
    return request


def complete(request, now: datetime):
    _transition(request, COMPLETED)
    request.tracking_step = STEP_COMPLETED
    request.completed_at = now
    return request


def cancel(request, reason: str, now: datetime, cancelled_by=None):
    _transition(request, CANCELLED)
    request.cancellation_reason = reason
    request.cancelled_at = now
    request.cancelled_by = cancelled_by
    return request


def driver_cancellation_reason(code: str) -> str:
    label = DRIVER_CANCELLATION_REASONS.get(code, code)
    return f"{DRIVER_CANCEL_PREFIX}{label}"


def requires_boarding_pin(service_type: str) -> bool:
    return service_type in ("taxi", "moto_ride")


def is_final(status: str) -> bool:
    return status in FINAL_STATUSES
