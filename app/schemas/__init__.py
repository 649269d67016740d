"""Pydantic schemas for API validation."""

from app.schemas.boat import (
    BoatCreate,
    BoatEnvelope,
    BoatListResponse,
    BoatResponse,
    BoatUpdate,
)
from app.schemas.booking import (
    BoatSummary,
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
from app.schemas.payment import (
    PaystackWebhookData,
    PaystackWebhookEvent,
    WebhookAck,
)

__all__ = [
    # Boat
    "BoatCreate",
    "BoatUpdate",
    "BoatResponse",
    "BoatEnvelope",
    "BoatListResponse",
    # Booking
    "BookingCreate",
    "BoatSummary",
    "BookingResponse",
    "BookingDetailResponse",
    "BookingEnvelope",
    "BookingInitializeResponse",
    "BookingVerifyResponse",
    "BookingCancelResponse",
    "BookingListResponse",
    "Pagination",
    "RefundSummary",
    # Payment
    "PaystackWebhookData",
    "PaystackWebhookEvent",
    "WebhookAck",
]
