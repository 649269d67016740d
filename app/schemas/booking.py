"""Booking-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.domain.booking_state import BookingStatus
from app.domain.payment_state import PaymentStatus
from app.utils.time import ensure_utc


class BookingCreate(BaseModel):
    """Schema for initializing a booking.

    Accepts the camelCase field names sent by the web client as well as
    snake_case names.
    """

    model_config = ConfigDict(populate_by_name=True)

    boat_id: UUID = Field(..., alias="boatId")
    start_date: datetime = Field(..., alias="startDate")
    end_date: datetime = Field(..., alias="endDate")
    number_of_guests: int = Field(..., alias="numberOfGuest", ge=1)
    occasion: str | None = Field(None, max_length=100)
    special_request: str | None = Field(None, alias="specialRequest", max_length=1000)

    @field_validator("start_date")
    @classmethod
    def validate_start_date(cls, v: datetime) -> datetime:
        # Naive timestamps are taken as UTC
        return ensure_utc(v)

    @field_validator("end_date")
    @classmethod
    def validate_end_date(cls, v: datetime, info) -> datetime:
        v = ensure_utc(v)
        start_date = info.data.get("start_date")
        if start_date and v <= start_date:
            raise ValueError("End date must be after start date")
        return v


class BoatSummary(BaseModel):
    """Boat details embedded in booking responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    boat_name: str
    boat_type: str
    company_name: str
    capacity: int
    price_per_hour: Decimal


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    boat_id: UUID

    # Interval
    start_date: datetime
    end_date: datetime

    # Guests
    number_of_guests: int
    occasion: str | None
    special_request: str | None

    # Pricing
    total_price: Decimal
    currency: str

    # Status
    status: BookingStatus
    payment_status: PaymentStatus
    payment_reference: str
    payment_method: str | None
    paid_at: datetime | None

    # Refund
    refund_amount: Decimal | None
    refund_percentage: int | None
    refunded_at: datetime | None

    # Timestamps
    cancelled_at: datetime | None
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime


class BookingDetailResponse(BookingResponse):
    """Booking with its boat."""

    boat: BoatSummary | None = None


class BookingEnvelope(BaseModel):
    booking: BookingDetailResponse


class BookingInitializeResponse(BaseModel):
    """Schema returned after a booking is created and checkout opened."""

    booking: BookingResponse
    payment_url: str
    payment_reference: str


class BookingVerifyResponse(BaseModel):
    message: str
    booking: BookingResponse


class RefundSummary(BaseModel):
    amount: Decimal
    percentage: int


class BookingCancelResponse(BaseModel):
    """Schema returned after a successful cancellation."""

    booking: BookingResponse
    refund: RefundSummary


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class BookingListResponse(BaseModel):
    """Schema for paginated booking list."""

    data: list[BookingDetailResponse]
    pagination: Pagination
