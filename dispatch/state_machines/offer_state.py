from datetime import datetime, timedelta

PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"
EXPIRED = "expired"

INITIAL = "initial"
COUNTER = "counter"


class OfferStateException(Exception):
    """Raised when an invalid offer transition is attempted."""
    pass


def offer_expiry(now: datetime, expiry_seconds: int) -> datetime:
    return now + timedelta(seconds=expiry_seconds)


def is_offer_expired(offer, now: datetime) -> bool:
    return offer.expires_at is not None and offer.expires_at <= now


def _require_pending(offer) -> None:
    if offer.status != PENDING:
        raise OfferStateException(f"Offer {offer.id} is not pending. Current: {offer.status}")


def accept_offer(offer, now: datetime):
    _require_pending(offer)
    if is_offer_expired(offer, now):
        raise OfferStateException(f"Offer {offer.id} expired")
    offer.status = ACCEPTED
    return offer


def reject_offer(offer):
    _require_pending(offer)
    offer.status = REJECTED
    return offer


def expire_offer(offer):
    _require_pending(offer)
    offer.status = EXPIRED
    return offer
