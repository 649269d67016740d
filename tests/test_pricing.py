from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from app.core.exceptions import InvalidBookingStatus
from app.domain.booking_state import (
    BookingStatus,
    assert_booking_transition,
    can_transition_booking,
    is_terminal,
)
from app.domain.payment_state import PaymentStatus, assert_payment_transition, can_transition_payment
from app.domain.pricing import calculate_total_price
from app.gateways.base import from_minor_units, to_minor_units

START = datetime(2026, 6, 1, 10, 0, tzinfo=UTC)


def test_total_price_whole_hours():
    assert calculate_total_price(Decimal("50000.00"), START, START + timedelta(hours=4)) == Decimal(
        "200000.00"
    )


def test_total_price_fractional_hours():
    total = calculate_total_price(Decimal("1000.00"), START, START + timedelta(minutes=90))
    assert total == Decimal("1500.00")


def test_minor_unit_conversion():
    assert to_minor_units(Decimal("1500.50")) == 150050
    assert to_minor_units("0.005") == 1
    assert from_minor_units(150050) == Decimal("1500.50")


def test_booking_transitions():
    assert can_transition_booking(BookingStatus.PENDING, BookingStatus.CONFIRMED)
    assert can_transition_booking(BookingStatus.PENDING, BookingStatus.ABANDONED)
    assert can_transition_booking(BookingStatus.CONFIRMED, BookingStatus.CANCELLED)
    assert can_transition_booking(BookingStatus.CONFIRMED, BookingStatus.COMPLETED)
    assert not can_transition_booking(BookingStatus.ABANDONED, BookingStatus.CONFIRMED)
    assert not can_transition_booking(BookingStatus.PENDING, BookingStatus.COMPLETED)

    for status in (BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.ABANDONED):
        assert is_terminal(status)


def test_payment_transitions():
    assert can_transition_payment(PaymentStatus.PENDING, PaymentStatus.SUCCESSFUL)
    assert can_transition_payment(PaymentStatus.SUCCESSFUL, PaymentStatus.REFUNDED)
    assert not can_transition_payment(PaymentStatus.FAILED, PaymentStatus.SUCCESSFUL)
    assert not can_transition_payment(PaymentStatus.REFUNDED, PaymentStatus.SUCCESSFUL)


def test_invalid_transitions_raise():
    with pytest.raises(InvalidBookingStatus):
        assert_booking_transition(BookingStatus.CANCELLED, BookingStatus.CONFIRMED)
    with pytest.raises(InvalidBookingStatus):
        assert_payment_transition(PaymentStatus.FAILED, PaymentStatus.REFUNDED)

    assert_booking_transition(BookingStatus.PENDING, BookingStatus.CONFIRMED)
    assert_payment_transition(PaymentStatus.SUCCESSFUL, PaymentStatus.PARTIALLY_REFUNDED)
