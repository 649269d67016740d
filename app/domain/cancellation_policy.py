"""Cancellation refund policy.

Refund tier is chosen by the hours remaining until the booking starts:
- 24h or more before start: 90% refund
- less than 24h before start: 50% refund
- after the start time: cancellation rejected
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from app.core.exceptions import BadRequestError

# Refund rules: list of (min_hours_before_start, refund_percentage)
# Evaluated in order - first match wins
REFUND_RULES: list[tuple[Decimal, int]] = [
    (Decimal("24"), 90),
    (Decimal("0"), 50),
]

CENT = Decimal("0.01")


@dataclass(frozen=True)
class RefundQuote:
    """Refund owed for a cancellation."""

    hours_until_start: Decimal
    percentage: int
    amount: Decimal


def hours_until(start: datetime, now: datetime) -> Decimal:
    """Hours from ``now`` to ``start``; negative once the start has passed."""
    seconds = Decimal(str((start - now).total_seconds()))
    return seconds / Decimal("3600")


def calculate_refund_percentage(hours_until_start: Decimal | float) -> int:
    """Pick the refund percentage for a cancellation.

    Raises:
        BadRequestError: If the booking has already started
    """
    hours = Decimal(str(hours_until_start))
    if hours < 0:
        raise BadRequestError("Booking cannot be cancelled after the start time has passed")

    for min_hours, refund_pct in REFUND_RULES:
        if hours >= min_hours:
            return refund_pct

    # Unreachable while the table ends at 0h
    return 0


def calculate_refund_amount(total_price: Decimal, percentage: int) -> Decimal:
    """Refund amount in major currency units, rounded to the cent."""
    amount = Decimal(total_price) * Decimal(percentage) / Decimal("100")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def quote_refund(total_price: Decimal, start: datetime, now: datetime) -> RefundQuote:
    """Compute the refund for cancelling a booking that starts at ``start``."""
    hours = hours_until(start, now)
    percentage = calculate_refund_percentage(hours)
    return RefundQuote(
        hours_until_start=hours,
        percentage=percentage,
        amount=calculate_refund_amount(total_price, percentage),
    )

