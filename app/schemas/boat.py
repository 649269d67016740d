"""Boat catalogue Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.booking import Pagination

COMPANY_NAME_PATTERN = "^(lagoMarineService|partyBoatLagos|sunsetYachts)$"
BOAT_TYPE_PATTERN = "^(luxuryYacht|speedboat|sailboat|partyBoat)$"


class BoatCreate(BaseModel):
    """Schema for adding a boat to the catalogue."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    boat_name: str = Field(..., alias="boatName", min_length=1, max_length=200)
    company_name: str = Field(..., alias="companyName", pattern=COMPANY_NAME_PATTERN)
    boat_type: str = Field(..., alias="boatType", pattern=BOAT_TYPE_PATTERN)
    description: str = Field(..., min_length=1, max_length=5000)
    location: str = Field(..., min_length=1, max_length=200)
    capacity: int = Field(..., ge=1, le=1000)
    price_per_hour: Decimal = Field(..., alias="pricePerHour", gt=0, max_digits=12, decimal_places=2)
    currency: str = Field(default="NGN", pattern="^NGN$")
    is_active: bool = Field(default=True, alias="isAvailable")


class BoatUpdate(BaseModel):
    """Schema for updating a boat. Only the fields sent are changed."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="forbid")

    boat_name: str | None = Field(None, alias="boatName", min_length=1, max_length=200)
    company_name: str | None = Field(None, alias="companyName", pattern=COMPANY_NAME_PATTERN)
    boat_type: str | None = Field(None, alias="boatType", pattern=BOAT_TYPE_PATTERN)
    description: str | None = Field(None, min_length=1, max_length=5000)
    location: str | None = Field(None, min_length=1, max_length=200)
    capacity: int | None = Field(None, ge=1, le=1000)
    price_per_hour: Decimal | None = Field(
        None, alias="pricePerHour", gt=0, max_digits=12, decimal_places=2
    )


class BoatResponse(BaseModel):
    """Schema for boat response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    boat_name: str
    company_name: str
    boat_type: str
    description: str | None
    location: str | None
    capacity: int
    price_per_hour: Decimal
    currency: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class BoatEnvelope(BaseModel):
    boat: BoatResponse


class BoatListResponse(BaseModel):
    """Schema for paginated boat list."""

    data: list[BoatResponse]
    pagination: Pagination
