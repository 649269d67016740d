"""API dependencies for authentication and service wiring."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.security import decode_access_token
from app.database import get_db
from app.gateways.base import PaymentGateway
from app.models.user import User
from app.services.booking_service import BookingService
from app.services.notification_service import NotificationService
from app.services.reconciliation_service import ReconciliationService

# Security scheme
security = HTTPBearer()


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token."""
    user_id = decode_access_token(credentials.credentials)

    # Fetch user from database
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    return user


async def get_current_admin(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get current user and verify they are an admin."""
    if not current_user.is_admin:
        raise AuthorizationError("Admin access required")
    return current_user


# ==================== SERVICES ====================


def get_payment_gateway(request: Request) -> PaymentGateway:
    """Payment gateway created at startup."""
    return request.app.state.payment_gateway


def get_notification_service(request: Request) -> NotificationService:
    """Notification service created at startup."""
    return request.app.state.notification_service


def get_booking_service(
    gateway: Annotated[PaymentGateway, Depends(get_payment_gateway)],
    notifier: Annotated[NotificationService, Depends(get_notification_service)],
) -> BookingService:
    return BookingService(gateway, notifier, settings)


def get_reconciliation_service(
    gateway: Annotated[PaymentGateway, Depends(get_payment_gateway)],
    notifier: Annotated[NotificationService, Depends(get_notification_service)],
) -> ReconciliationService:
    return ReconciliationService(gateway, notifier)


# Type aliases for common dependencies
DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentAdmin = Annotated[User, Depends(get_current_admin)]
BookingServiceDep = Annotated[BookingService, Depends(get_booking_service)]
ReconciliationServiceDep = Annotated[ReconciliationService, Depends(get_reconciliation_service)]
