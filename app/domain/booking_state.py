"""Booking state machine.

States: PENDING → CONFIRMED → COMPLETED
        PENDING → ABANDONED
        CONFIRMED → CANCELLED
"""

from enum import Enum

from app.core.exceptions import InvalidBookingStatus


class BookingStatus(str, Enum):
    """Booking lifecycle states."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    ABANDONED = "ABANDONED"


BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.ABANDONED},
    BookingStatus.CONFIRMED: {BookingStatus.CANCELLED, BookingStatus.COMPLETED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
    BookingStatus.ABANDONED: set(),
}

# Statuses that hold a boat's time slot
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


def can_transition_booking(current: str | BookingStatus, target: str | BookingStatus) -> bool:
    return BookingStatus(target) in BOOKING_TRANSITIONS.get(BookingStatus(current), set())


def assert_booking_transition(current: str | BookingStatus, target: str | BookingStatus) -> None:
    if not can_transition_booking(current, target):
        raise InvalidBookingStatus(
            f"Invalid booking transition: {BookingStatus(current).value} → {BookingStatus(target).value}"
        )


def is_terminal(status: str | BookingStatus) -> bool:
    """Check whether a booking can no longer change status."""
    return not BOOKING_TRANSITIONS[BookingStatus(status)]
