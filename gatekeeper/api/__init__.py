"""API routes package."""

from fastapi import APIRouter

from gatekeeper.api.routes import (
    barrier,
    blacklist,
    integrations,
    notifications,
    passages,
    recognition,
    settings,
    vehicles,
)

# Main API router
api_router = APIRouter(prefix="/api/v1")

# Include route modules
api_router.include_router(recognition.router)
api_router.include_router(barrier.router)
api_router.include_router(vehicles.router)
api_router.include_router(blacklist.router)
api_router.include_router(passages.router)
api_router.include_router(notifications.router)
api_router.include_router(integrations.router)
api_router.include_router(settings.router)
