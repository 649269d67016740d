"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from app.api.v1 import admin, boats, bookings, webhooks

api_router = APIRouter()

# Boat catalogue
api_router.include_router(boats.router, prefix="/boats", tags=["Boats"])

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Webhooks (no auth - verified by signature)
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])

# Admin
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
