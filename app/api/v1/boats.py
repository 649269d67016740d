"""Boat catalogue endpoints."""

import logging
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentAdmin, DbSession
from app.core.exceptions import BadRequestError, NotFoundError, ValidationError
from app.models.boat import Boat
from app.schemas.boat import BoatCreate, BoatEnvelope, BoatListResponse, BoatResponse, BoatUpdate
from app.schemas.booking import Pagination
from app.utils.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_LIMIT, build_pagination, get_offset

logger = logging.getLogger(__name__)

router = APIRouter()

# Filter values the web client sends to mean "no filter"
ALL_COMPANIES = "allCompanies"
ALL_BOAT_TYPES = "allBoatTypes"


async def _get_boat(db: AsyncSession, boat_id: UUID) -> Boat:
    boat = await db.get(Boat, boat_id, populate_existing=True)
    if not boat:
        raise NotFoundError("Boat", str(boat_id))
    return boat


@router.get("", response_model=BoatListResponse)
async def list_boats(
    db: DbSession,
    page: int = Query(DEFAULT_PAGE, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    company_name: str | None = Query(None, alias="companyName"),
    boat_type: str | None = Query(None, alias="boatType"),
    boat_name: str | None = Query(None, alias="boatName"),
    capacity_min: int | None = Query(None, alias="capacityMin", ge=1),
    capacity_max: int | None = Query(None, alias="capacityMax", ge=1),
    price_min: Decimal | None = Query(None, alias="priceMin", ge=0),
    price_max: Decimal | None = Query(None, alias="priceMax", ge=0),
) -> BoatListResponse:
    """List bookable boats, newest first."""
    conditions = [Boat.is_active.is_(True)]
    if company_name and company_name != ALL_COMPANIES:
        conditions.append(Boat.company_name == company_name)
    if boat_type and boat_type != ALL_BOAT_TYPES:
        conditions.append(Boat.boat_type == boat_type)
    if boat_name:
        conditions.append(Boat.boat_name.ilike(f"%{boat_name}%"))
    if capacity_min is not None:
        conditions.append(Boat.capacity >= capacity_min)
    if capacity_max is not None:
        conditions.append(Boat.capacity <= capacity_max)
    if price_min is not None:
        conditions.append(Boat.price_per_hour >= price_min)
    if price_max is not None:
        conditions.append(Boat.price_per_hour <= price_max)

    count_result = await db.execute(select(func.count()).select_from(Boat).where(*conditions))
    total = count_result.scalar_one()

    result = await db.execute(
        select(Boat)
        .where(*conditions)
        .order_by(Boat.created_at.desc())
        .offset(get_offset(page, limit))
        .limit(limit)
    )
    return BoatListResponse(
        data=[BoatResponse.model_validate(b) for b in result.scalars().all()],
        pagination=Pagination(**build_pagination(page, limit, total)),
    )


@router.get("/{boat_id}", response_model=BoatEnvelope)
async def get_boat(boat_id: UUID, db: DbSession) -> BoatEnvelope:
    """Get a bookable boat by ID."""
    boat = await _get_boat(db, boat_id)

    # Boats taken off the catalogue are hidden from customers
    if not boat.is_active:
        raise NotFoundError("Boat", str(boat_id))

    return BoatEnvelope(boat=BoatResponse.model_validate(boat))


@router.post("", response_model=BoatEnvelope, status_code=status.HTTP_201_CREATED)
async def create_boat(boat_data: BoatCreate, admin: CurrentAdmin, db: DbSession) -> BoatEnvelope:
    """Add a boat to the catalogue."""
    boat = Boat(**boat_data.model_dump())
    db.add(boat)
    await db.commit()
    await db.refresh(boat)

    logger.info(f"Boat {boat.id} ({boat.boat_name}) added by {admin.id}")
    return BoatEnvelope(boat=BoatResponse.model_validate(boat))


@router.patch("/{boat_id}", response_model=BoatEnvelope)
async def update_boat(
    boat_id: UUID,
    updates: BoatUpdate,
    admin: CurrentAdmin,
    db: DbSession,
) -> BoatEnvelope:
    """Update a boat's details.

    Existing bookings keep the price they were created with.
    """
    update_data = updates.model_dump(exclude_unset=True)
    if not update_data:
        raise BadRequestError("No fields to update")

    null_fields = sorted(field for field, value in update_data.items() if value is None)
    if null_fields:
        raise ValidationError(f"Fields cannot be null: {', '.join(null_fields)}")

    boat = await _get_boat(db, boat_id)
    for field, value in update_data.items():
        setattr(boat, field, value)
    await db.commit()
    await db.refresh(boat)

    logger.info(f"Boat {boat_id} updated by {admin.id}: {', '.join(sorted(update_data))}")
    return BoatEnvelope(boat=BoatResponse.model_validate(boat))


@router.patch("/{boat_id}/toggle-availability", response_model=BoatEnvelope)
async def toggle_boat_availability(
    boat_id: UUID,
    admin: CurrentAdmin,
    db: DbSession,
) -> BoatEnvelope:
    """Take a boat off the catalogue, or put it back.

    Unavailable boats accept no new bookings; existing bookings stand.
    """
    boat = await _get_boat(db, boat_id)
    boat.is_active = not boat.is_active
    await db.commit()
    await db.refresh(boat)

    logger.info(f"Boat {boat_id} {'made available' if boat.is_active else 'made unavailable'} by {admin.id}")
    return BoatEnvelope(boat=BoatResponse.model_validate(boat))
