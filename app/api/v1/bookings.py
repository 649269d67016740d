"""Booking endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.api.deps import BookingServiceDep, CurrentUser, DbSession, ReconciliationServiceDep
from app.schemas.booking import (
    BookingCancelResponse,
    BookingCreate,
    BookingDetailResponse,
    BookingEnvelope,
    BookingInitializeResponse,
    BookingListResponse,
    BookingResponse,
    BookingVerifyResponse,
    Pagination,
    RefundSummary,
)
from app.utils.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_LIMIT, build_pagination

router = APIRouter()


@router.post(
    "/initialize",
    response_model=BookingInitializeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def initialize_booking(
    request: BookingCreate,
    current_user: CurrentUser,
    db: DbSession,
    bookings: BookingServiceDep,
) -> BookingInitializeResponse:
    """Reserve a boat and open a Paystack checkout for it."""
    result = await bookings.initialize_booking(db, current_user.id, request)
    return BookingInitializeResponse(
        booking=BookingResponse.model_validate(result.booking),
        payment_url=result.payment_url,
        payment_reference=result.payment_reference,
    )


@router.get("/verify/{reference}", response_model=BookingVerifyResponse)
async def verify_booking_payment(
    reference: str,
    current_user: CurrentUser,
    db: DbSession,
    reconciliation: ReconciliationServiceDep,
) -> BookingVerifyResponse:
    """Confirm a booking after the customer returns from checkout."""
    result = await reconciliation.verify_and_confirm(db, reference)
    return BookingVerifyResponse(
        message=result.message,
        booking=BookingResponse.model_validate(result.booking),
    )


@router.get("/reference/{reference}", response_model=BookingEnvelope)
async def get_booking_by_reference(
    reference: str,
    current_user: CurrentUser,
    db: DbSession,
    bookings: BookingServiceDep,
) -> BookingEnvelope:
    """Look up a booking by its payment reference."""
    booking = await bookings.get_booking_by_reference(db, reference, current_user)
    return BookingEnvelope(booking=BookingDetailResponse.model_validate(booking))


@router.get("", response_model=BookingListResponse)
async def list_my_bookings(
    current_user: CurrentUser,
    db: DbSession,
    bookings: BookingServiceDep,
    page: int = Query(DEFAULT_PAGE, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
) -> BookingListResponse:
    """List the current user's bookings, newest first."""
    items, total = await bookings.list_user_bookings(db, current_user.id, page, limit)
    return BookingListResponse(
        data=[BookingDetailResponse.model_validate(b) for b in items],
        pagination=Pagination(**build_pagination(page, limit, total)),
    )


@router.get("/{booking_id}", response_model=BookingEnvelope)
async def get_booking(
    booking_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    bookings: BookingServiceDep,
) -> BookingEnvelope:
    """Get one of the current user's bookings."""
    booking = await bookings.get_user_booking(db, booking_id, current_user)
    return BookingEnvelope(booking=BookingDetailResponse.model_validate(booking))


@router.patch("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking(
    booking_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    bookings: BookingServiceDep,
) -> BookingCancelResponse:
    """Cancel a confirmed booking and refund according to the cancellation policy."""
    result = await bookings.cancel_booking(db, booking_id, current_user.id)
    return BookingCancelResponse(
        booking=BookingResponse.model_validate(result.booking),
        refund=RefundSummary(
            amount=result.refund_amount,
            percentage=result.refund_percentage,
        ),
    )
