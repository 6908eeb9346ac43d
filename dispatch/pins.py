#Purpose: Short numeric codes exchanged in person.
#Boarding PIN: the client tells it to the driver when getting on board.
#Delivery PIN: the client tells it to the courier when receiving the goods.

import re
import secrets

MOTO_RIDE_PIN_LENGTH = 3
DEFAULT_PIN_LENGTH = 4


def pin_length_for(service_type: str) -> int:
    if service_type == "moto_ride":
        return MOTO_RIDE_PIN_LENGTH
    return DEFAULT_PIN_LENGTH


def generate_pin(length: int = DEFAULT_PIN_LENGTH) -> str:
    if length <= 0:
        raise ValueError("PIN length must be > 0")
    return str(secrets.randbelow(10 ** length)).zfill(length)


def normalize_pin(raw, length: int) -> str:
    """Keeps digits only, truncated to the expected length."""
    return re.sub(r"\D", "", str(raw or ""))[:length]


def pins_match(expected, given, length: int) -> bool:
    given = normalize_pin(given, length)
    if not expected or len(given) != length:
        return False
    return secrets.compare_digest(str(expected), given)
