"""Boat model."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base
from app.utils.time import utcnow

if TYPE_CHECKING:
    from app.models.booking import Booking


class Boat(Base):
    """A bookable boat.

    Managed through the catalogue endpoints; bookings read the capacity and
    hourly rate once, at creation.
    """

    __tablename__ = "boats"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    boat_name: Mapped[str] = mapped_column(String(200), nullable=False)
    company_name: Mapped[str] = mapped_column(
        String(100), nullable=False, index=True
    )  # lagoMarineService, partyBoatLagos, sunsetYachts
    boat_type: Mapped[str] = mapped_column(
        String(50), nullable=False, index=True
    )  # luxuryYacht, speedboat, sailboat, partyBoat
    description: Mapped[str | None] = mapped_column(Text)
    location: Mapped[str | None] = mapped_column(String(200))

    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_hour: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="NGN")

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="boat")
