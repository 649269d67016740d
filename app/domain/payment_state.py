"""Payment state machine.

Independent of the booking status axis; see booking_state for how the two
move together.
"""

from enum import Enum

from app.core.exceptions import InvalidBookingStatus


class PaymentStatus(str, Enum):
    """Payment states for a booking."""

    PENDING = "PENDING"
    SUCCESSFUL = "SUCCESSFUL"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"


PAYMENT_TRANSITIONS: dict[PaymentStatus, set[PaymentStatus]] = {
    PaymentStatus.PENDING: {PaymentStatus.SUCCESSFUL, PaymentStatus.FAILED},
    PaymentStatus.SUCCESSFUL: {PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED},
    PaymentStatus.PARTIALLY_REFUNDED: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: set(),
    PaymentStatus.REFUNDED: set(),
}


def can_transition_payment(current: str | PaymentStatus, target: str | PaymentStatus) -> bool:
    return PaymentStatus(target) in PAYMENT_TRANSITIONS.get(PaymentStatus(current), set())



def assert_payment_transition(current: str | PaymentStatus, target: str | PaymentStatus) -> None:
    if not can_transition_payment(current, target):
        raise InvalidBookingStatus(
            f"Invalid payment transition: {PaymentStatus(current).value} → {PaymentStatus(target).value}"
        )
