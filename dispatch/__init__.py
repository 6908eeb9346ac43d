#Expose the high-level marketplace pieces:
#Request / offer state machines
#PINs
#Pricing and commission periods

from .state_machines.request_state import RequestStateException
from .state_machines.offer_state import OfferStateException
from .pins import generate_pin, pin_length_for, pins_match
from .pricing import commission_for, driver_earnings, period_bounds, week_bounds

__all__ = [
    "RequestStateException",
    "OfferStateException",
    "generate_pin",
    "pin_length_for",
    "pins_match",
    "commission_for",
    "driver_earnings",
    "period_bounds",
    "week_bounds",
]
