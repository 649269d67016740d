"""Boat availability checks."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.booking_state import ACTIVE_BOOKING_STATUSES
from app.models.booking import Booking


async def has_overlapping_booking(
    db: AsyncSession,
    boat_id: UUID,
    start: datetime,
    end: datetime,
    exclude_booking_id: UUID | None = None,
) -> bool:
    """Check whether an active booking for the boat overlaps ``[start, end)``.

    Only PENDING and CONFIRMED bookings hold a slot. Intervals are half-open,
    so a booking ending exactly when another starts does not conflict.
    Runs on the caller's session so it sees the caller's transaction.
    """
    query = select(Booking.id).where(
        Booking.boat_id == boat_id,
        Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        Booking.start_date < end,
        Booking.end_date > start,
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)

    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none() is not None
