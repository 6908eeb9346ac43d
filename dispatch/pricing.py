"""
Purpose: Commission and period math for the marketplace.
What it does:
The app keeps a flat commission per completed service. Drivers settle the
accumulated commission weekly (Monday to Sunday).
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Tuple

COMMISSION_RATES = {
    "taxi": Decimal("5"),
    "moto_ride": Decimal("5"),
    "mandadito": Decimal("3"),
}

# Mandadito requests are priced as driver earnings + commission.
MANDADITO_DRIVER_EARNINGS = Decimal("25")
MOTO_RIDE_FIXED_PRICE = Decimal("25")

PERIOD_CURRENT = "current"
PERIOD_PREVIOUS = "previous"
PERIOD_ALL = "all"


def commission_for(service_type: str) -> Decimal:
    return COMMISSION_RATES.get(str(service_type), Decimal("0"))


def client_total(driver_earnings, service_type: str) -> Decimal:
    return Decimal(driver_earnings) + commission_for(service_type)


def driver_earnings(final_price, service_type: str) -> Decimal:
    if final_price is None:
        return Decimal("0")
    return max(Decimal("0"), Decimal(final_price) - commission_for(service_type))


def week_bounds(now: datetime) -> Tuple[datetime, datetime]:
    """Monday 00:00 to Sunday 23:59:59.999999 of the week containing now."""
    start = (now - timedelta(days=now.weekday())).replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=7) - timedelta(microseconds=1)
    return start, end


def period_bounds(period_filter: str, now: datetime) -> Tuple[datetime, datetime]:
    """
    Report window for a period filter. "all" covers the last 30 days and runs
    to the end of the current week, so every stored week inside it matches.
    """
    start, end = week_bounds(now)
    if period_filter == PERIOD_CURRENT:
        return start, end
    if period_filter == PERIOD_PREVIOUS:
        return start - timedelta(days=7), end - timedelta(days=7)
    if period_filter == PERIOD_ALL:
        return now - timedelta(days=30), end
    raise ValueError(f"Unknown period filter: {period_filter}")
