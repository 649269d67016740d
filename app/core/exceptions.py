"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class BadRequestError(AppException):
    """Request is well-formed but cannot be honoured."""

    def __init__(self, detail: str = "Bad request") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ValidationError(AppException):
    """Validation error exception."""

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(AppException):
    """Authorization denied exception."""

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class SlotUnavailable(AppException):
    """Requested time slot overlaps an active booking."""

    def __init__(
        self,
        detail: str = "The boat is already booked for the selected time. Please choose a different time slot.",
    ) -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class InvalidBookingStatus(BadRequestError):
    """Operation not allowed from the booking's current status."""

    def __init__(self, detail: str = "This operation is not allowed for the current booking status") -> None:
        super().__init__(detail)


class InternalServerError(AppException):
    """Unexpected failure the caller can only retry or escalate."""

    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


class ExternalServiceError(AppException):
    """External service error."""

    def __init__(
        self,
        service: str,
        detail: str | None = None,
        status_code: int = status.HTTP_503_SERVICE_UNAVAILABLE,
    ) -> None:
        message = f"External service '{service}' is unavailable"
        if detail:
            message = f"{message}: {detail}"
        self.service = service
        super().__init__(status_code=status_code, detail=message)


class GatewayError(ExternalServiceError):
    """Any failure talking to the payment provider."""

    def __init__(self, detail: str | None = None, service: str = "paystack") -> None:
        super().__init__(service=service, detail=detail, status_code=status.HTTP_502_BAD_GATEWAY)
