"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.router import api_router
from app.config import settings
from app.core.background_tasks import LifecycleScheduler
from app.core.exceptions import AppException
from app.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from app.database import async_session_maker, close_db, init_db
from app.gateways.paystack import PaystackGateway
from app.services.lifecycle_sweeper import LifecycleSweeper
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Startup
    if settings.debug:
        await init_db()

    app.state.payment_gateway = PaystackGateway()
    app.state.notification_service = NotificationService()

    scheduler: LifecycleScheduler | None = None
    if settings.run_sweepers_in_process:
        sweeper = LifecycleSweeper(async_session_maker, app.state.notification_service)
        scheduler = LifecycleScheduler(
            sweeper,
            abandon_interval_seconds=settings.abandon_sweep_interval_seconds,
            completion_interval_seconds=settings.completion_sweep_interval_seconds,
        )
        scheduler.start()

    logger.info(f"{settings.app_name} API started ({settings.environment})")

    yield

    # Shutdown
    if scheduler:
        await scheduler.stop()
    await app.state.payment_gateway.aclose()
    await app.state.notification_service.close()
    await close_db()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Boat Cruise - Boat Booking & Payments API",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # Exception handlers
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        """Handle custom application exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=exc.headers,
        )

    # Middleware (order matters - first added = last executed)
    # 1. Security headers (outermost)
    app.add_middleware(SecurityHeadersMiddleware)

    # 2. Request logging
    app.add_middleware(RequestLoggingMiddleware)

    # 3. CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 4. Gzip compression (innermost)
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Include API routes
    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers,
    )
