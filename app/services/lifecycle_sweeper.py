"""Time-based booking transitions.

- Unpaid PENDING bookings older than the payment timeout become ABANDONED.
- CONFIRMED bookings whose end time has passed become COMPLETED.

Each sweep is a single conditional bulk update, so a row whose state moved
on since it was selected is left alone. Customers are then emailed about the
rows this run touched, found by the ``updated_at`` stamp the update wrote.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.config import Settings, settings as default_settings
from app.domain.booking_state import BookingStatus
from app.domain.payment_state import PaymentStatus
from app.models.booking import Booking
from app.services.notification_service import NotificationService
from app.utils.time import utcnow

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    updated: int
    notified: int


class LifecycleSweeper:
    """Runs the abandon and completion sweeps."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: NotificationService,
        settings: Settings | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.notifier = notifier
        self.settings = settings or default_settings

    async def abandon_stale_bookings(self, now: datetime | None = None) -> SweepResult:
        """Abandon bookings still unpaid after the payment timeout."""
        now = now or utcnow()
        cutoff = now - timedelta(minutes=self.settings.pending_payment_timeout_minutes)

        async with self.session_factory() as db:
            result = await db.execute(
                update(Booking)
                .where(
                    Booking.status == BookingStatus.PENDING,
                    Booking.payment_status == PaymentStatus.PENDING,
                    Booking.created_at <= cutoff,
                )
                .values(status=BookingStatus.ABANDONED, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            updated = result.rowcount or 0

            notified = 0
            if updated:
                bookings = await self._touched_by_sweep(db, BookingStatus.ABANDONED, now)
                for booking in bookings:
                    if await self.notifier.notify_booking_abandoned(booking):
                        notified += 1

        logger.info(f"Abandoned {updated} booking(s), sent {notified} email(s)")
        return SweepResult(updated=updated, notified=notified)

    async def complete_finished_bookings(self, now: datetime | None = None) -> SweepResult:
        """Complete paid bookings whose end time has passed."""
        now = now or utcnow()

        async with self.session_factory() as db:
            result = await db.execute(
                update(Booking)
                .where(
                    Booking.status == BookingStatus.CONFIRMED,
                    Booking.payment_status == PaymentStatus.SUCCESSFUL,
                    Booking.end_date <= now,
                )
                .values(status=BookingStatus.COMPLETED, completed_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            updated = result.rowcount or 0

            notified = 0
            if updated:
                bookings = await self._touched_by_sweep(db, BookingStatus.COMPLETED, now)
                for booking in bookings:
                    if await self.notifier.notify_booking_completed(booking):
                        notified += 1

        logger.info(f"Completed {updated} booking(s), sent {notified} email(s)")
        return SweepResult(updated=updated, notified=notified)

    async def _touched_by_sweep(
        self, db: AsyncSession, status: BookingStatus, swept_at: datetime
    ) -> list[Booking]:
        result = await db.execute(
            select(Booking)
            .where(Booking.status == status, Booking.updated_at >= swept_at)
            .options(selectinload(Booking.user), selectinload(Booking.boat))
        )
        return list(result.scalars().all())
