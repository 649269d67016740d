"""Booking lifecycle service.

Creates bookings against a payment checkout and cancels confirmed bookings
with a policy-based refund. Payment confirmation lives in
``reconciliation_service``; time-based transitions in ``lifecycle_sweeper``.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import Settings, settings as default_settings
from app.core.exceptions import (
    AppException,
    AuthorizationError,
    BadRequestError,
    GatewayError,
    InternalServerError,
    InvalidBookingStatus,
    NotFoundError,
    SlotUnavailable,
)
from app.domain.booking_state import BookingStatus, can_transition_booking
from app.domain.cancellation_policy import quote_refund
from app.domain.payment_state import PaymentStatus
from app.domain.pricing import calculate_total_price
from app.gateways.base import PaymentGateway, to_minor_units
from app.models.boat import Boat
from app.models.booking import Booking
from app.models.user import User
from app.schemas.booking import BookingCreate
from app.services.availability_service import has_overlapping_booking
from app.services.notification_service import NotificationService
from app.utils.pagination import get_offset
from app.utils.time import ensure_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class BookingInitialization:
    booking: Booking
    payment_url: str
    payment_reference: str


@dataclass
class BookingCancellation:
    booking: Booking
    refund_amount: Decimal
    refund_percentage: int


async def load_booking(db: AsyncSession, booking_id: UUID) -> Booking | None:
    """Load a booking with its user and boat, overwriting any stale identity-map copy."""
    result = await db.execute(
        select(Booking)
        .where(Booking.id == booking_id)
        .options(selectinload(Booking.user), selectinload(Booking.boat))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _insert_conflict(error: IntegrityError, reference: str) -> AppException:
    """Map a failed booking insert to the error the caller should see."""
    if "payment_reference" in str(error.orig):
        logger.error(f"Payment reference {reference} collided with an existing booking")
        return InternalServerError("Could not allocate a payment reference. Please try again.")
    # Overlap rejected by the exclusion constraint
    return SlotUnavailable()


class BookingService:
    """Service for creating, cancelling and reading bookings."""

    def __init__(
        self,
        gateway: PaymentGateway,
        notifier: NotificationService,
        settings: Settings | None = None,
    ) -> None:
        self.gateway = gateway
        self.notifier = notifier
        self.settings = settings or default_settings

    # ==================== CREATE ====================

    async def initialize_booking(
        self,
        db: AsyncSession,
        user_id: UUID,
        request: BookingCreate,
        now: datetime | None = None,
    ) -> BookingInitialization:
        """Create a PENDING booking and open a checkout for it.

        The boat row is locked for the rest of the transaction, so concurrent
        requests for the same boat run the overlap check one at a time. The
        booking is only committed once the gateway has returned a checkout URL.

        Raises:
            BadRequestError: Start in the past or empty interval
            NotFoundError: Unknown boat or user
            AuthorizationError: More guests than the boat holds
            SlotUnavailable: Interval overlaps an active booking
            InternalServerError: Payment reference collided with another booking
            GatewayError: Checkout could not be created
        """
        now = now or utcnow()
        start = ensure_utc(request.start_date)
        end = ensure_utc(request.end_date)

        if start < now:
            raise BadRequestError("Start date cannot be in the past")
        if end <= start:
            raise BadRequestError("End date must be after start date")

        # Write-lock the boat row; a no-op UPDATE locks on every backend,
        # where FOR UPDATE is silently dropped by some (SQLite)
        await db.execute(
            update(Boat)
            .where(Boat.id == request.boat_id)
            .values(updated_at=Boat.updated_at)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(
            select(Boat)
            .where(Boat.id == request.boat_id)
            .execution_options(populate_existing=True)
        )
        boat = result.scalar_one_or_none()
        if not boat or not boat.is_active:
            raise NotFoundError("Boat", str(request.boat_id))

        if request.number_of_guests > boat.capacity:
            raise AuthorizationError(
                f"Number of guests ({request.number_of_guests}) exceeds boat capacity ({boat.capacity})"
            )

        user = await db.get(User, user_id)
        if not user or not user.email:
            raise NotFoundError("User")

        total_price = calculate_total_price(boat.price_per_hour, start, end)

        if await has_overlapping_booking(db, boat.id, start, end):
            raise SlotUnavailable()

        reference = self.gateway.generate_reference(self.settings.payment_reference_prefix)
        booking = Booking(
            user_id=user.id,
            boat_id=boat.id,
            start_date=start,
            end_date=end,
            number_of_guests=request.number_of_guests,
            occasion=request.occasion,
            special_request=request.special_request,
            total_price=total_price,
            currency=boat.currency or self.settings.paystack_currency,
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            payment_reference=reference,
            created_at=now,
            updated_at=now,
        )
        db.add(booking)
        try:
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            raise _insert_conflict(e, reference)

        try:
            checkout = await self.gateway.initialize_payment(
                email=user.email,
                amount_minor=to_minor_units(total_price),
                reference=reference,
                metadata={
                    "booking_id": str(booking.id),
                    "user_id": str(user.id),
                    "boat_id": str(boat.id),
                    "boat_name": boat.boat_name,
                    "start_date": start.isoformat(),
                    "end_date": end.isoformat(),
                },
                callback_url=f"{self.settings.frontend_url}/bookings/{booking.id}/verify",
            )
        except GatewayError:
            await db.rollback()
            logger.error(f"Checkout creation failed for boat {request.boat_id}, booking discarded")
            raise

        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise _insert_conflict(e, reference)

        booking = await load_booking(db, booking.id)

        logger.info(
            f"Booking {booking.id} created for boat {boat.id} "
            f"({start.isoformat()} - {end.isoformat()}), reference {reference}"
        )
        return BookingInitialization(
            booking=booking,
            payment_url=checkout.authorization_url,
            payment_reference=reference,
        )

    # ==================== CANCEL ====================

    async def cancel_booking(
        self,
        db: AsyncSession,
        booking_id: UUID,
        user_id: UUID,
        now: datetime | None = None,
    ) -> BookingCancellation:
        """Cancel a confirmed booking and refund according to the policy.

        The booking is first claimed with ``cancellation_requested_at`` so two
        concurrent cancellations can not both reach the refund call. If the
        refund fails the claim is released and the booking stays CONFIRMED.

        Raises:
            NotFoundError: Booking does not exist or belongs to someone else
            BadRequestError: Not cancellable, already started, or claimed
            InternalServerError: Gateway refused the refund
        """
        now = now or utcnow()

        result = await db.execute(
            select(Booking)
            .where(Booking.id == booking_id, Booking.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking", str(booking_id))

        if not can_transition_booking(booking.status, BookingStatus.CANCELLED):
            raise InvalidBookingStatus(
                f"Booking cannot be cancelled. Current status: {BookingStatus(booking.status).value}"
            )
        if booking.payment_status != PaymentStatus.SUCCESSFUL:
            raise BadRequestError("Cannot cancel booking without successful payment")

        quote = quote_refund(booking.total_price, ensure_utc(booking.start_date), now)

        if not await self._claim_cancellation(db, booking.id, now):
            await db.rollback()
            current = await load_booking(db, booking_id)
            if (
                current.status != BookingStatus.CONFIRMED
                or current.payment_status != PaymentStatus.SUCCESSFUL
            ):
                raise InvalidBookingStatus(
                    f"Booking cannot be cancelled. Current status: {BookingStatus(current.status).value}"
                )
            raise BadRequestError("A cancellation is already in progress")
        await db.commit()

        try:
            refund = await self.gateway.process_refund(
                reference=booking.payment_reference,
                amount_minor=to_minor_units(quote.amount),
                merchant_note=f"Cancellation of booking {booking.id} ({quote.percentage}% refund)",
                customer_note=f"Refund for your cancelled booking {booking.payment_reference}",
            )
        except GatewayError as e:
            logger.error(f"Refund failed for booking {booking.id}: {e.detail}")
            await db.execute(
                update(Booking)
                .where(Booking.id == booking.id, Booking.cancellation_requested_at == now)
                .values(cancellation_requested_at=None)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            raise InternalServerError("Failed to process refund. Please contact support.")

        # A refund.processed webhook may already have cancelled the booking
        # without the refund details; our claim is still on it, so fill them in
        final = await db.execute(
            update(Booking)
            .where(
                Booking.id == booking.id,
                Booking.cancellation_requested_at == now,
                or_(
                    Booking.status == BookingStatus.CONFIRMED,
                    and_(
                        Booking.status == BookingStatus.CANCELLED,
                        Booking.refund_amount.is_(None),
                    ),
                ),
            )
            .values(
                status=BookingStatus.CANCELLED,
                payment_status=PaymentStatus.REFUNDED,
                refund_amount=quote.amount,
                refund_percentage=quote.percentage,
                refund_reference=refund.refund_id or None,
                refunded_at=now,
                cancelled_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if final.rowcount == 0:
            logger.warning(
                f"Booking {booking.id} changed while its refund was in flight; keeping the stored state"
            )
        await db.commit()

        booking = await load_booking(db, booking.id)
        logger.info(
            f"Booking {booking.id} cancelled with {quote.percentage}% refund ({quote.amount})"
        )

        if final.rowcount:
            await self.notifier.notify_booking_cancelled(booking)

        return BookingCancellation(
            booking=booking,
            refund_amount=quote.amount,
            refund_percentage=quote.percentage,
        )

    async def _claim_cancellation(self, db: AsyncSession, booking_id: UUID, now: datetime) -> bool:
        """Mark a paid, confirmed booking as being cancelled; False if it can't be claimed."""
        stale_claim_before = now - timedelta(minutes=self.settings.cancellation_claim_ttl_minutes)
        claim = await db.execute(
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.status == BookingStatus.CONFIRMED,
                Booking.payment_status == PaymentStatus.SUCCESSFUL,
                or_(
                    Booking.cancellation_requested_at.is_(None),
                    Booking.cancellation_requested_at < stale_claim_before,
                ),
            )
            .values(cancellation_requested_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return claim.rowcount > 0

    # ==================== READ ====================

    async def get_user_booking(
        self, db: AsyncSession, booking_id: UUID, user: User
    ) -> Booking:
        """Fetch a booking owned by ``user`` (any booking for admins)."""
        booking = await load_booking(db, booking_id)
        if not booking or (booking.user_id != user.id and not user.is_admin):
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def get_booking_by_reference(
        self, db: AsyncSession, reference: str, user: User
    ) -> Booking:
        """Fetch a booking by payment reference, scoped to its owner unless admin."""
        query = (
            select(Booking)
            .where(Booking.payment_reference == reference)
            .options(selectinload(Booking.user), selectinload(Booking.boat))
        )
        if not user.is_admin:
            query = query.where(Booking.user_id == user.id)
        result = await db.execute(query)
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking")
        return booking

    async def list_user_bookings(
        self, db: AsyncSession, user_id: UUID, page: int, limit: int
    ) -> tuple[list[Booking], int]:
        """Page through a user's bookings, newest first."""
        return await self._paginate(db, page, limit, Booking.user_id == user_id)

    async def list_all_bookings(
        self,
        db: AsyncSession,
        page: int,
        limit: int,
        status: BookingStatus | None = None,
    ) -> tuple[list[Booking], int]:
        """Page through every booking, optionally by status (admin)."""
        conditions = [Booking.status == status] if status else []
        return await self._paginate(db, page, limit, *conditions)

    async def _paginate(
        self, db: AsyncSession, page: int, limit: int, *conditions
    ) -> tuple[list[Booking], int]:
        count_result = await db.execute(
            select(func.count()).select_from(Booking).where(*conditions)
        )
        total = count_result.scalar_one()

        result = await db.execute(
            select(Booking)
            .where(*conditions)
            .options(selectinload(Booking.boat))
            .order_by(Booking.created_at.desc())
            .offset(get_offset(page, limit))
            .limit(limit)
        )
        return list(result.scalars().all()), total
