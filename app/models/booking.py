"""Booking model."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base
from app.domain.booking_state import BookingStatus
from app.domain.payment_state import PaymentStatus
from app.utils.time import utcnow

if TYPE_CHECKING:
    from app.models.boat import Boat
    from app.models.user import User


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class Booking(Base):
    """A reservation of a boat for a time interval.

    ``payment_reference`` is the idempotency key for reconciliation. Postgres
    additionally carries an exclusion constraint (see the initial migration)
    that rejects overlapping PENDING/CONFIRMED intervals for the same boat.
    """

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("end_date > start_date", name="ck_bookings_interval"),
        CheckConstraint("number_of_guests > 0", name="ck_bookings_guests_positive"),
        Index("ix_bookings_boat_interval", "boat_id", "start_date", "end_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    boat_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("boats.id"), nullable=False, index=True
    )

    # Interval
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Guests
    number_of_guests: Mapped[int] = mapped_column(Integer, nullable=False)
    occasion: Mapped[str | None] = mapped_column(String(100))
    special_request: Mapped[str | None] = mapped_column(Text)

    # Pricing (major currency units)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="NGN")

    # Status
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, native_enum=False, length=20, values_callable=_enum_values),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, native_enum=False, length=20, values_callable=_enum_values),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True,
    )

    # Payment
    payment_reference: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )
    payment_method: Mapped[str | None] = mapped_column(String(30))  # card, bank, ussd, ...
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Refund (populated on cancellation)
    refund_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    refund_percentage: Mapped[int | None] = mapped_column(Integer)
    refund_reference: Mapped[str | None] = mapped_column(String(100))
    refunded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Set while a refund is being issued; guards against double refunds
    cancellation_requested_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Timestamps
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="bookings")
    boat: Mapped["Boat"] = relationship("Boat", back_populates="bookings")
