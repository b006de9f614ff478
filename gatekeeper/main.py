"""
FastAPI application entry point.

Configures the application with:
- Lifespan handlers for database setup and shared clients
- CORS middleware
- Correlation ID middleware
- Health and readiness probes
- Photo file serving
- API routes
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel
from sqlalchemy import text

from gatekeeper import __version__
from gatekeeper.api import api_router
from gatekeeper.application.dispatch import BackgroundDispatcher
from gatekeeper.application.quiet_hours import QuietHoursScheduler
from gatekeeper.core.config import get_settings
from gatekeeper.core.logging import get_correlation_id, get_logger, set_correlation_id, setup_logging
from gatekeeper.infrastructure.db.session import close_db, get_session_factory, init_db
from gatekeeper.infrastructure.notifications import EmailChannel, TelegramChannel
from gatekeeper.infrastructure.recognition import get_plate_classifier
from gatekeeper.infrastructure.storage import ImageStorage

# Initialize logging
setup_logging()
logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str = __version__


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    status: str
    database_connected: bool
    recognition_configured: bool


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager.

    Handles startup and shutdown tasks:
    - Startup: Initialize DB, shared HTTP client, channels and the quiet
      hours loop
    - Shutdown: Finish in-flight notifications, close connections
    """
    logger.info("application_starting")
    settings = get_settings()

    try:
        await init_db()
        logger.info("database_initialized")
    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    client = httpx.AsyncClient()
    channels = [
        EmailChannel(settings),
        TelegramChannel(client, settings.telegram_api_base),
    ]
    session_factory = get_session_factory()

    app.state.http_client = client
    app.state.channels = channels
    app.state.classifier = get_plate_classifier(settings, client)
    app.state.storage = ImageStorage(settings.image_storage_path, settings.photo_base_url)
    app.state.dispatcher = BackgroundDispatcher(session_factory, channels)
    app.state.scheduler = QuietHoursScheduler(session_factory, channels)

    drain_task = None
    if settings.quiet_hours_drain_interval_seconds > 0:
        drain_task = asyncio.create_task(
            app.state.scheduler.run_periodic(settings.quiet_hours_drain_interval_seconds)
        )

    logger.info("application_started")

    yield

    # Shutdown
    logger.info("application_shutting_down")
    if drain_task is not None:
        drain_task.cancel()
        try:
            await drain_task
        except asyncio.CancelledError:
            pass
    await app.state.dispatcher.shutdown()
    await client.aclose()
    await close_db()
    logger.info("application_shutdown_complete")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Gatekeeper Access Control",
        description="Plate-based barrier access decisions and owner notifications",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else ["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Correlation ID middleware
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        """Add correlation ID to each request."""
        set_correlation_id(request.headers.get("X-Correlation-ID"))

        response = await call_next(request)

        response.headers["X-Correlation-ID"] = get_correlation_id()
        return response

    # Health check endpoints
    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["health"],
    )
    async def health_check() -> HealthResponse:
        """
        Basic liveness probe.

        Returns 200 if the application is running.
        """
        return HealthResponse(status="healthy")

    @app.get(
        "/ready",
        response_model=ReadinessResponse,
        tags=["health"],
    )
    async def readiness_check() -> ReadinessResponse:
        """
        Readiness probe for load balancers.

        Returns 200 only if the database answers. A missing recognition
        endpoint is reported but does not fail the probe; operators can
        still open the barrier manually.
        """
        database_connected = True
        try:
            async with get_session_factory()() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            logger.warning("readiness_database_failed", error=str(e))
            database_connected = False

        response = ReadinessResponse(
            status="ready" if database_connected else "not_ready",
            database_connected=database_connected,
            recognition_configured=settings.recognition_endpoint is not None,
        )

        if not database_connected:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content=response.model_dump(),
            )

        return response

    # Stored photos
    if settings.photo_base_url.startswith("/"):
        app.mount(
            settings.photo_base_url,
            StaticFiles(directory=settings.image_storage_path, check_dir=False),
            name="photos",
        )

    # Include API routes
    app.include_router(api_router)

    return app


# Create app instance
app = create_app()
