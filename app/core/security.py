"""Bearer tokens for API callers.

Tokens are minted by the account service with the shared secret. It puts
the user ID in ``userId``; tokens minted here use ``sub``. Either is
accepted. Refresh tokens are not valid for API calls.
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt

from app.config import settings
from app.core.exceptions import AuthenticationError

SUBJECT_CLAIMS = ("sub", "userId")


def create_access_token(
    user_id: UUID | str,
    expires_delta: timedelta | None = None,
    **claims: Any,
) -> str:
    """Create an access token for ``user_id`` (scripts and tests)."""
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {**claims, "sub": str(user_id), "exp": expire, "type": "access"}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> UUID:
    """Return the ID of the user a bearer token was issued to.

    Raises:
        AuthenticationError: Bad signature, expired, refresh token, or no user ID
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except JWTError as e:
        raise AuthenticationError(f"Token validation failed: {str(e)}")

    if payload.get("type") == "refresh":
        raise AuthenticationError("Invalid token type")

    subject = next((payload[c] for c in SUBJECT_CLAIMS if payload.get(c)), None)
    try:
        return UUID(str(subject))
    except ValueError:
        raise AuthenticationError("Malformed authentication token")
