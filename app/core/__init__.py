"""Core utilities and security modules."""

from app.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    BadRequestError,
    ExternalServiceError,
    GatewayError,
    InternalServerError,
    InvalidBookingStatus,
    NotFoundError,
    SlotUnavailable,
    ValidationError,
)
from app.core.security import create_access_token, decode_access_token

__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "BadRequestError",
    "ExternalServiceError",
    "GatewayError",
    "InternalServerError",
    "InvalidBookingStatus",
    "NotFoundError",
    "SlotUnavailable",
    "ValidationError",
    "create_access_token",
    "decode_access_token",
]
