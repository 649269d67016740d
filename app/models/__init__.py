"""Database models."""

from app.models.boat import Boat
from app.models.booking import Booking
from app.models.user import User

__all__ = [
    "User",
    "Boat",
    "Booking",
]
