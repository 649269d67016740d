"""Booking price calculation."""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def duration_hours(start: datetime, end: datetime) -> Decimal:
    """Length of the interval in (possibly fractional) hours."""
    seconds = Decimal(str((end - start).total_seconds()))
    return seconds / Decimal("3600")


def calculate_total_price(price_per_hour: Decimal, start: datetime, end: datetime) -> Decimal:
    """Hourly rate times duration, rounded to the cent.

    Frozen on the booking at creation; later rate changes on the boat do
    not touch existing bookings.
    """
    total = Decimal(price_per_hour) * duration_hours(start, end)
    return total.quantize(CENT, rounding=ROUND_HALF_UP)
