"""Payment reconciliation.

Both ways a payment result can reach us, the customer polling
``/bookings/verify/{reference}`` and Paystack posting a webhook, go through
``reconcile``. It locks the booking row and only writes through conditional
updates on the expected prior state, so concurrent deliveries of the same
payment confirm the booking exactly once.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestError, InvalidBookingStatus, NotFoundError
from app.domain.booking_state import BookingStatus, can_transition_booking
from app.domain.payment_state import PaymentStatus, can_transition_payment
from app.gateways.base import GatewayPaymentStatus, PaymentGateway, PaymentVerification, to_minor_units
from app.models.booking import Booking
from app.schemas.payment import PaystackWebhookEvent
from app.services.booking_service import load_booking
from app.services.notification_service import NotificationService
from app.utils.time import parse_iso_datetime, utcnow

logger = logging.getLogger(__name__)

FAILED_GATEWAY_STATUSES = {
    GatewayPaymentStatus.FAILED.value,
    GatewayPaymentStatus.ABANDONED.value,
}

SETTLED_PAYMENT_STATUSES = (
    PaymentStatus.SUCCESSFUL,
    PaymentStatus.REFUNDED,
    PaymentStatus.PARTIALLY_REFUNDED,
)


class ReconcileOutcome(str, Enum):
    CONFIRMED = "confirmed"
    ALREADY_PROCESSED = "already_processed"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_PENDING = "payment_pending"
    AMOUNT_MISMATCH = "amount_mismatch"
    LATE_PAYMENT = "late_payment"
    NOT_PAYABLE = "not_payable"
    NOT_FOUND = "not_found"


@dataclass
class ReconcileResult:
    outcome: ReconcileOutcome
    booking: Booking | None = None


@dataclass
class VerificationResult:
    message: str
    booking: Booking


class ReconciliationService:
    """Applies verified payment results to bookings."""

    def __init__(self, gateway: PaymentGateway, notifier: NotificationService) -> None:
        self.gateway = gateway
        self.notifier = notifier

    async def reconcile(
        self,
        db: AsyncSession,
        payment: PaymentVerification,
        mark_failed_on_mismatch: bool,
    ) -> ReconcileResult:
        """Apply a verified payment to the booking that owns its reference.

        Every exit ends the transaction. Exits that write nothing commit
        anyway: that releases the row lock without expiring the loaded booking.

        Args:
            db: Database session
            payment: Payment state as reported by the gateway
            mark_failed_on_mismatch: Fail the booking when the paid amount
                differs from the booking total (webhook path) instead of
                leaving it untouched (poll path)

        Returns:
            ReconcileResult: What happened, and the booking if one exists
        """
        result = await db.execute(
            select(Booking)
            .where(Booking.payment_reference == payment.reference)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        if not booking:
            await db.commit()
            logger.error(f"No booking for payment reference {payment.reference}")
            return ReconcileResult(ReconcileOutcome.NOT_FOUND)

        if booking.payment_status in SETTLED_PAYMENT_STATUSES:
            await db.commit()
            return ReconcileResult(ReconcileOutcome.ALREADY_PROCESSED, booking)

        if not payment.is_successful:
            if payment.status not in FAILED_GATEWAY_STATUSES:
                await db.commit()
                return ReconcileResult(ReconcileOutcome.PAYMENT_PENDING, booking)
            await self._mark_failed(db, booking)
            logger.info(f"Payment {payment.reference} {payment.status}, booking {booking.id} abandoned")
            return ReconcileResult(ReconcileOutcome.PAYMENT_FAILED, await load_booking(db, booking.id))

        expected_minor = to_minor_units(booking.total_price)
        if payment.amount_minor != expected_minor or payment.currency != booking.currency:
            logger.error(
                f"Amount mismatch for {payment.reference}: paid {payment.amount_minor} "
                f"{payment.currency}, expected {expected_minor} {booking.currency}"
            )
            if mark_failed_on_mismatch:
                await self._mark_failed(db, booking)
                booking = await load_booking(db, booking.id)
            else:
                await db.commit()
            return ReconcileResult(ReconcileOutcome.AMOUNT_MISMATCH, booking)

        now = utcnow()
        paid_at = payment.paid_at or now

        if booking.status == BookingStatus.ABANDONED and booking.payment_status == PaymentStatus.PENDING:
            # Money arrived after the slot was released: record it, keep the
            # booking abandoned, and leave the refund to support
            await db.execute(
                update(Booking)
                .where(
                    Booking.id == booking.id,
                    Booking.payment_status == PaymentStatus.PENDING,
                )
                .values(
                    payment_status=PaymentStatus.SUCCESSFUL,
                    payment_method=payment.channel,
                    paid_at=paid_at,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            logger.error(
                f"Late payment {payment.reference} for abandoned booking {booking.id}: manual refund required"
            )
            return ReconcileResult(ReconcileOutcome.LATE_PAYMENT, await load_booking(db, booking.id))

        if not (
            can_transition_booking(booking.status, BookingStatus.CONFIRMED)
            and can_transition_payment(booking.payment_status, PaymentStatus.SUCCESSFUL)
        ):
            await db.commit()
            logger.warning(
                f"Payment {payment.reference} succeeded but booking {booking.id} is "
                f"{BookingStatus(booking.status).value}/{PaymentStatus(booking.payment_status).value}"
            )
            return ReconcileResult(ReconcileOutcome.NOT_PAYABLE, booking)

        confirmed = await db.execute(
            update(Booking)
            .where(
                Booking.id == booking.id,
                Booking.status == BookingStatus.PENDING,
                Booking.payment_status == PaymentStatus.PENDING,
            )
            .values(
                status=BookingStatus.CONFIRMED,
                payment_status=PaymentStatus.SUCCESSFUL,
                payment_method=payment.channel,
                paid_at=paid_at,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if confirmed.rowcount == 0:
            await db.commit()
            return ReconcileResult(ReconcileOutcome.ALREADY_PROCESSED, await load_booking(db, booking.id))
        await db.commit()

        booking = await load_booking(db, booking.id)
        logger.info(f"Booking {booking.id} confirmed by payment {payment.reference}")
        await self.notifier.notify_booking_confirmed(booking)
        return ReconcileResult(ReconcileOutcome.CONFIRMED, booking)

    async def _mark_failed(self, db: AsyncSession, booking: Booking) -> None:
        await db.execute(
            update(Booking)
            .where(
                Booking.id == booking.id,
                Booking.status.in_((BookingStatus.PENDING, BookingStatus.ABANDONED)),
                Booking.payment_status == PaymentStatus.PENDING,
            )
            .values(
                status=BookingStatus.ABANDONED,
                payment_status=PaymentStatus.FAILED,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()

    # ==================== POLL PATH ====================

    async def verify_and_confirm(self, db: AsyncSession, reference: str) -> VerificationResult:
        """Verify a payment with the gateway and confirm its booking.

        Raises:
            NotFoundError: Unknown reference
            BadRequestError: Payment did not settle the booking
            GatewayError: Gateway could not be reached
        """
        result = await db.execute(
            select(Booking)
            .where(Booking.payment_reference == reference)
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking")

        if booking.payment_status in SETTLED_PAYMENT_STATUSES:
            if booking.status == BookingStatus.CONFIRMED:
                return VerificationResult("Booking already confirmed", booking)
            raise InvalidBookingStatus(
                f"Booking cannot be confirmed. Current status: {BookingStatus(booking.status).value}"
            )

        # Don't hold a transaction open across the gateway call
        await db.commit()

        payment = await self.gateway.verify_payment(reference)
        outcome = await self.reconcile(db, payment, mark_failed_on_mismatch=False)

        if outcome.outcome == ReconcileOutcome.CONFIRMED:
            return VerificationResult("Booking confirmed successfully", outcome.booking)
        if outcome.outcome == ReconcileOutcome.ALREADY_PROCESSED:
            if outcome.booking.status == BookingStatus.CONFIRMED:
                return VerificationResult("Booking already confirmed", outcome.booking)
            raise InvalidBookingStatus(
                f"Booking cannot be confirmed. Current status: {BookingStatus(outcome.booking.status).value}"
            )
        if outcome.outcome in (ReconcileOutcome.PAYMENT_FAILED, ReconcileOutcome.PAYMENT_PENDING):
            raise BadRequestError(f"Payment verification failed. Status: {payment.status}")
        if outcome.outcome == ReconcileOutcome.AMOUNT_MISMATCH:
            raise BadRequestError("Payment amount does not match booking total")
        if outcome.outcome == ReconcileOutcome.LATE_PAYMENT:
            raise BadRequestError(
                "Payment received after the booking expired. Please contact support for a refund."
            )
        if outcome.outcome == ReconcileOutcome.NOT_FOUND:
            raise NotFoundError("Booking")
        raise InvalidBookingStatus(
            f"Booking cannot be confirmed. Current status: {BookingStatus(outcome.booking.status).value}"
        )

    # ==================== WEBHOOK PATH ====================

    async def handle_webhook_event(self, db: AsyncSession, event: PaystackWebhookEvent) -> None:
        """Dispatch a signature-verified Paystack event."""
        handlers = {
            "charge.success": self._on_charge_event,
            "charge.failed": self._on_charge_event,
            "refund.processed": self._on_refund_processed,
            "refund.failed": self._on_refund_failed,
        }
        handler = handlers.get(event.event)
        if handler is None:
            logger.info(f"Ignoring unhandled Paystack event: {event.event}")
            return
        await handler(db, event)

    async def _on_charge_event(self, db: AsyncSession, event: PaystackWebhookEvent) -> None:
        data = event.data
        if not data.reference:
            logger.warning(f"{event.event} event without a reference")
            return

        default_status = (
            GatewayPaymentStatus.SUCCESS.value
            if event.event == "charge.success"
            else GatewayPaymentStatus.FAILED.value
        )
        payment = PaymentVerification(
            reference=data.reference,
            status=data.status or default_status,
            amount_minor=data.amount or 0,
            currency=data.currency or "NGN",
            paid_at=parse_iso_datetime(data.paid_at),
            channel=data.channel,
            metadata=data.metadata if isinstance(data.metadata, dict) else {},
        )
        result = await self.reconcile(db, payment, mark_failed_on_mismatch=True)
        logger.info(f"{event.event} for {data.reference}: {result.outcome.value}")

    async def _on_refund_processed(self, db: AsyncSession, event: PaystackWebhookEvent) -> None:
        reference = event.data.effective_reference
        if not reference:
            logger.warning("refund.processed event without a transaction reference")
            return

        result = await db.execute(
            select(Booking)
            .where(Booking.payment_reference == reference)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        if not booking:
            await db.rollback()
            logger.warning(f"refund.processed for unknown reference {reference}")
            return

        if booking.payment_status == PaymentStatus.REFUNDED:
            await db.rollback()
            logger.info(f"Refund for booking {booking.id} already recorded")
            return

        now = utcnow()
        values = {
            "payment_status": PaymentStatus.REFUNDED,
            "refunded_at": booking.refunded_at or now,
            "updated_at": now,
        }
        if booking.status == BookingStatus.CONFIRMED:
            # A refunded booking can not stay confirmed
            values["status"] = BookingStatus.CANCELLED
            values["cancelled_at"] = now

        await db.execute(
            update(Booking)
            .where(
                Booking.id == booking.id,
                Booking.payment_status.in_(
                    (PaymentStatus.SUCCESSFUL, PaymentStatus.PARTIALLY_REFUNDED)
                ),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        logger.info(f"Refund processed for booking {booking.id}")

    async def _on_refund_failed(self, db: AsyncSession, event: PaystackWebhookEvent) -> None:
        reference = event.data.effective_reference
        logger.error(f"Refund failed for transaction {reference}: manual refund required")
