"""Admin booking endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query

from app.api.deps import BookingServiceDep, CurrentAdmin, DbSession
from app.domain.booking_state import BookingStatus
from app.schemas.booking import BookingDetailResponse, BookingEnvelope, BookingListResponse, Pagination
from app.utils.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_LIMIT, build_pagination

router = APIRouter()


@router.get("/bookings", response_model=BookingListResponse)
async def list_all_bookings(
    admin: CurrentAdmin,
    db: DbSession,
    bookings: BookingServiceDep,
    page: int = Query(DEFAULT_PAGE, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    status: BookingStatus | None = None,
) -> BookingListResponse:
    """List every booking, optionally filtered by status."""
    items, total = await bookings.list_all_bookings(db, page, limit, status)
    return BookingListResponse(
        data=[BookingDetailResponse.model_validate(b) for b in items],
        pagination=Pagination(**build_pagination(page, limit, total)),
    )


@router.get("/bookings/{booking_id}", response_model=BookingEnvelope)
async def get_any_booking(
    booking_id: UUID,
    admin: CurrentAdmin,
    db: DbSession,
    bookings: BookingServiceDep,
) -> BookingEnvelope:
    """Get any booking by ID."""
    booking = await bookings.get_user_booking(db, booking_id, admin)
    return BookingEnvelope(booking=BookingDetailResponse.model_validate(booking))
