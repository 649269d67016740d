from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import (
    AuthorizationError,
    BadRequestError,
    GatewayError,
    InternalServerError,
    InvalidBookingStatus,
    NotFoundError,
    SlotUnavailable,
)
from app.domain.booking_state import BookingStatus
from app.domain.payment_state import PaymentStatus
from app.models.booking import Booking
from app.schemas.booking import BookingCreate
from app.schemas.payment import PaystackWebhookEvent
from app.services.booking_service import BookingService, _insert_conflict, load_booking
from app.services.reconciliation_service import ReconcileOutcome, ReconciliationService
from app.utils.time import utcnow
from tests.fakes import successful_payment


def booking_request(boat_id, start, hours=4, guests=4) -> BookingCreate:
    return BookingCreate(
        boatId=boat_id,
        startDate=start,
        endDate=start + timedelta(hours=hours),
        numberOfGuest=guests,
        occasion="Birthday",
    )


async def count_bookings(db) -> int:
    return (await db.execute(select(func.count()).select_from(Booking))).scalar_one()


# ==================== INITIALIZE ====================


async def test_initialize_then_confirm_happy_path(
    db, booking_service, reconciliation_service, gateway, notifier, user, boat
):
    start = utcnow() + timedelta(days=2)

    result = await booking_service.initialize_booking(db, user.id, booking_request(boat.id, start))

    booking = result.booking
    assert booking.status == BookingStatus.PENDING
    assert booking.payment_status == PaymentStatus.PENDING
    assert booking.total_price == Decimal("200000.00")
    assert result.payment_url == f"https://checkout.paystack.com/{result.payment_reference}"
    assert result.payment_reference.startswith("BKG-")

    [call] = gateway.initialized
    assert call["email"] == "ada@example.com"
    assert call["amount_minor"] == 20000000
    assert call["metadata"]["booking_id"] == str(booking.id)
    assert call["metadata"]["boat_name"] == "Lagoon Breeze"
    assert call["callback_url"].endswith(f"/bookings/{booking.id}/verify")

    outcome = await reconciliation_service.reconcile(
        db, successful_payment(booking), mark_failed_on_mismatch=False
    )

    assert outcome.outcome == ReconcileOutcome.CONFIRMED
    assert outcome.booking.status == BookingStatus.CONFIRMED
    assert outcome.booking.payment_status == PaymentStatus.SUCCESSFUL
    assert outcome.booking.payment_method == "card"
    assert len(notifier.of_type("booking_confirmed")) == 1


async def test_initialize_rejects_start_in_the_past(db, booking_service, gateway, user, boat):
    start = utcnow() - timedelta(hours=1)

    with pytest.raises(BadRequestError) as exc:
        await booking_service.initialize_booking(db, user.id, booking_request(boat.id, start))

    assert exc.value.detail == "Start date cannot be in the past"
    assert gateway.initialized == []
    assert await count_bookings(db) == 0


async def test_initialize_rejects_overlap(db, booking_service, gateway, user, boat):
    start = utcnow() + timedelta(days=2)
    await booking_service.initialize_booking(db, user.id, booking_request(boat.id, start))

    overlapping = booking_request(boat.id, start + timedelta(hours=2))
    with pytest.raises(SlotUnavailable) as exc:
        await booking_service.initialize_booking(db, user.id, overlapping)

    assert exc.value.status_code == 409
    assert len(gateway.initialized) == 1
    assert await count_bookings(db) == 1


async def test_initialize_allows_adjacent_interval(db, booking_service, user, boat):
    start = utcnow() + timedelta(days=2)
    await booking_service.initialize_booking(db, user.id, booking_request(boat.id, start))

    adjacent = booking_request(boat.id, start + timedelta(hours=4))
    result = await booking_service.initialize_booking(db, user.id, adjacent)

    assert result.booking.status == BookingStatus.PENDING
    assert await count_bookings(db) == 2


async def test_abandoned_booking_does_not_block_slot(db, booking_service, make_booking, user, boat):
    existing = await make_booking(status=BookingStatus.ABANDONED, start_in=timedelta(days=2))
    start = existing.start_date

    result = await booking_service.initialize_booking(db, user.id, booking_request(boat.id, start))

    assert result.booking.status == BookingStatus.PENDING


async def test_initialize_rejects_too_many_guests(db, booking_service, user, boat):
    start = utcnow() + timedelta(days=2)

    with pytest.raises(AuthorizationError) as exc:
        await booking_service.initialize_booking(
            db, user.id, booking_request(boat.id, start, guests=11)
        )

    assert exc.value.status_code == 403
    assert exc.value.detail == "Number of guests (11) exceeds boat capacity (10)"


async def test_initialize_unknown_boat(db, booking_service, user):
    import uuid

    with pytest.raises(NotFoundError):
        await booking_service.initialize_booking(
            db, user.id, booking_request(uuid.uuid4(), utcnow() + timedelta(days=1))
        )


async def test_gateway_failure_leaves_no_booking(db, booking_service, gateway, user, boat):
    gateway.fail_initialize = True
    request = booking_request(boat.id, utcnow() + timedelta(days=2))

    with pytest.raises(GatewayError) as exc:
        await booking_service.initialize_booking(db, user.id, request)

    assert exc.value.status_code == 502
    assert await count_bookings(db) == 0


async def test_payment_reference_collision_is_internal_error(
    db, booking_service, gateway, make_booking, user, boat
):
    existing = await make_booking(start_in=timedelta(days=10))
    gateway.next_reference = existing.payment_reference
    request = booking_request(boat.id, utcnow() + timedelta(days=2))
    user_id = user.id

    with pytest.raises(InternalServerError) as exc:
        await booking_service.initialize_booking(db, user_id, request)

    assert exc.value.detail == "Could not allocate a payment reference. Please try again."
    assert gateway.initialized == []
    assert await count_bookings(db) == 1


def test_exclusion_constraint_violation_maps_to_slot_unavailable():
    error = IntegrityError(
        "INSERT INTO bookings",
        {},
        Exception('conflicting key value violates exclusion constraint "ex_bookings_no_overlap"'),
    )

    assert isinstance(_insert_conflict(error, "BKG-1"), SlotUnavailable)


def test_reference_unique_violation_maps_to_internal_error():
    error = IntegrityError(
        "INSERT INTO bookings",
        {},
        Exception("UNIQUE constraint failed: bookings.payment_reference"),
    )

    assert isinstance(_insert_conflict(error, "BKG-1"), InternalServerError)


# ==================== CANCEL ====================


async def test_cancel_more_than_24h_before_refunds_90_percent(
    db, booking_service, gateway, notifier, make_booking, user
):
    booking = await make_booking(
        status=BookingStatus.CONFIRMED,
        payment_status=PaymentStatus.SUCCESSFUL,
        start_in=timedelta(hours=30),
    )

    result = await booking_service.cancel_booking(db, booking.id, user.id)

    assert result.refund_percentage == 90
    assert result.refund_amount == Decimal("180000.00")
    assert result.booking.status == BookingStatus.CANCELLED
    assert result.booking.payment_status == PaymentStatus.REFUNDED
    assert result.booking.refund_reference == "rf_1"
    assert result.booking.cancelled_at is not None
    assert gateway.refunds == [
        {"reference": booking.payment_reference, "amount_minor": 18000000}
    ]
    assert len(notifier.of_type("booking_cancelled")) == 1


async def test_cancel_within_24h_refunds_50_percent(db, booking_service, gateway, make_booking, user):
    booking = await make_booking(
        status=BookingStatus.CONFIRMED,
        payment_status=PaymentStatus.SUCCESSFUL,
        start_in=timedelta(hours=5),
    )

    result = await booking_service.cancel_booking(db, booking.id, user.id)

    assert result.refund_percentage == 50
    assert result.refund_amount == Decimal("100000.00")
    assert gateway.refunds[0]["amount_minor"] == 10000000


async def test_cancel_pending_booking_is_rejected(db, booking_service, gateway, make_booking, user):
    booking = await make_booking()

    with pytest.raises(BadRequestError) as exc:
        await booking_service.cancel_booking(db, booking.id, user.id)

    assert exc.value.detail == "Booking cannot be cancelled. Current status: PENDING"
    assert gateway.refunds == []


async def test_cancel_after_start_is_rejected(db, booking_service, gateway, make_booking, user):
    booking = await make_booking(
        status=BookingStatus.CONFIRMED,
        payment_status=PaymentStatus.SUCCESSFUL,
        start_in=timedelta(hours=-1),
    )

    with pytest.raises(BadRequestError):
        await booking_service.cancel_booking(db, booking.id, user.id)

    assert gateway.refunds == []


async def test_cancel_someone_elses_booking_is_not_found(
    db, booking_service, make_booking, other_user
):
    booking = await make_booking(
        status=BookingStatus.CONFIRMED, payment_status=PaymentStatus.SUCCESSFUL
    )

    with pytest.raises(NotFoundError):
        await booking_service.cancel_booking(db, booking.id, other_user.id)


async def test_refund_failure_keeps_booking_confirmed(
    db, booking_service, gateway, notifier, make_booking, user
):
    booking = await make_booking(
        status=BookingStatus.CONFIRMED,
        payment_status=PaymentStatus.SUCCESSFUL,
        start_in=timedelta(days=3),
    )
    gateway.fail_refund = True

    with pytest.raises(InternalServerError) as exc:
        await booking_service.cancel_booking(db, booking.id, user.id)

    assert exc.value.detail == "Failed to process refund. Please contact support."
    stored = await load_booking(db, booking.id)
    assert stored.status == BookingStatus.CONFIRMED
    assert stored.payment_status == PaymentStatus.SUCCESSFUL
    assert stored.cancellation_requested_at is None
    assert notifier.of_type("booking_cancelled") == []

    # The claim was released, so a retry goes through
    gateway.fail_refund = False
    result = await booking_service.cancel_booking(db, booking.id, user.id)
    assert result.booking.status == BookingStatus.CANCELLED


async def test_cancel_in_progress_is_not_refunded_twice(
    db, booking_service, gateway, make_booking, user
):
    booking = await make_booking(
        status=BookingStatus.CONFIRMED, payment_status=PaymentStatus.SUCCESSFUL
    )
    booking.cancellation_requested_at = utcnow() - timedelta(minutes=1)
    await db.commit()

    with pytest.raises(BadRequestError) as exc:
        await booking_service.cancel_booking(db, booking.id, user.id)

    assert exc.value.detail == "A cancellation is already in progress"
    assert gateway.refunds == []


async def test_stale_cancellation_claim_is_taken_over(
    db, booking_service, gateway, make_booking, user
):
    booking = await make_booking(
        status=BookingStatus.CONFIRMED, payment_status=PaymentStatus.SUCCESSFUL
    )
    booking.cancellation_requested_at = utcnow() - timedelta(hours=1)
    await db.commit()

    result = await booking_service.cancel_booking(db, booking.id, user.id)

    assert result.booking.status == BookingStatus.CANCELLED
    assert len(gateway.refunds) == 1


async def test_cancelled_booking_can_not_be_cancelled_again(
    db, booking_service, gateway, make_booking, user
):
    booking = await make_booking(
        status=BookingStatus.CONFIRMED, payment_status=PaymentStatus.SUCCESSFUL
    )
    await booking_service.cancel_booking(db, booking.id, user.id)

    with pytest.raises(BadRequestError) as exc:
        await booking_service.cancel_booking(db, booking.id, user.id)

    assert exc.value.detail == "Booking cannot be cancelled. Current status: CANCELLED"
    assert len(gateway.refunds) == 1


async def test_refund_webhook_during_cancel_keeps_refund_details(
    db, booking_service, gateway, notifier, session_factory, make_booking, user
):
    booking = await make_booking(
        status=BookingStatus.CONFIRMED,
        payment_status=PaymentStatus.SUCCESSFUL,
        start_in=timedelta(days=3),
    )
    reference = booking.payment_reference
    webhooks = ReconciliationService(gateway, notifier)
    process_refund = gateway.process_refund

    async def refund_then_deliver_webhook(*args, **kwargs):
        refund = await process_refund(*args, **kwargs)
        # Paystack settles the refund before the cancel request finishes
        async with session_factory() as other:
            await webhooks.handle_webhook_event(
                other,
                PaystackWebhookEvent.model_validate(
                    {
                        "event": "refund.processed",
                        "data": {"transaction_reference": reference, "status": "processed"},
                    }
                ),
            )
        return refund

    gateway.process_refund = refund_then_deliver_webhook

    result = await booking_service.cancel_booking(db, booking.id, user.id)

    stored = await load_booking(db, booking.id)
    assert stored.status == BookingStatus.CANCELLED
    assert stored.payment_status == PaymentStatus.REFUNDED
    assert stored.refund_amount == Decimal("180000.00")
    assert stored.refund_percentage == 90
    assert stored.refund_reference == "rf_1"
    assert result.refund_amount == Decimal("180000.00")
    assert len(notifier.of_type("booking_cancelled")) == 1


async def test_cancel_reports_status_set_by_concurrent_writer(
    db, booking_service, gateway, session_factory, make_booking, user, monkeypatch
):
    booking = await make_booking(
        status=BookingStatus.CONFIRMED, payment_status=PaymentStatus.SUCCESSFUL
    )
    booking_id = booking.id
    claim = BookingService._claim_cancellation

    async def complete_then_claim(self, session, claimed_id, now):
        # The lifecycle sweep completes the booking between the read and the claim
        async with session_factory() as other:
            await other.execute(
                update(Booking)
                .where(Booking.id == claimed_id)
                .values(status=BookingStatus.COMPLETED)
            )
            await other.commit()
        return await claim(self, session, claimed_id, now)

    monkeypatch.setattr(BookingService, "_claim_cancellation", complete_then_claim)

    with pytest.raises(InvalidBookingStatus) as exc:
        await booking_service.cancel_booking(db, booking_id, user.id)

    assert exc.value.status_code == 400
    assert exc.value.detail == "Booking cannot be cancelled. Current status: COMPLETED"
    assert gateway.refunds == []


# ==================== READ ====================


async def test_list_user_bookings_paginates_own_bookings(
    db, booking_service, make_booking, user, other_user
):
    for days in (1, 2, 3):
        await make_booking(start_in=timedelta(days=days))
    await make_booking(start_in=timedelta(days=9), owner=other_user)

    items, total = await booking_service.list_user_bookings(db, user.id, page=1, limit=2)

    assert total == 3
    assert len(items) == 2
    assert all(b.user_id == user.id for b in items)


async def test_get_booking_by_reference_is_owner_scoped(
    db, booking_service, make_booking, other_user, admin
):
    booking = await make_booking()

    with pytest.raises(NotFoundError):
        await booking_service.get_booking_by_reference(db, booking.payment_reference, other_user)

    found = await booking_service.get_booking_by_reference(db, booking.payment_reference, admin)
    assert found.id == booking.id
