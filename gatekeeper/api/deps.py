"""
FastAPI dependencies for dependency injection.

Provides database sessions, the process-wide collaborators created in the
application lifespan (HTTP client, channels, dispatcher, scheduler), use case
instances and authentication dependencies for route handlers.
"""

from collections.abc import Sequence
from typing import Annotated

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.application.access_decision import AccessDecisionEngine
from gatekeeper.application.blacklist_csv import BlacklistCsvService
from gatekeeper.application.daily_summary import DailySummaryService
from gatekeeper.application.dispatch import NotificationDispatcher
from gatekeeper.application.hardware_service import HardwareService
from gatekeeper.application.notification_router import NotificationRouter
from gatekeeper.application.plate_recognition import PlateRecognitionUseCase
from gatekeeper.application.quiet_hours import QuietHoursScheduler
from gatekeeper.application.runtime_config import load_runtime_config
from gatekeeper.core.security import Operator, check_rate_limit, verify_api_key, verify_basic_auth
from gatekeeper.domain.models import RuntimeConfig
from gatekeeper.infrastructure.db.repository import SettingsRepository
from gatekeeper.infrastructure.db.session import get_session
from gatekeeper.infrastructure.notifications import NotificationChannel, TelegramChannel
from gatekeeper.infrastructure.recognition import PlateClassifier
from gatekeeper.infrastructure.storage import ImageStorage


# Type aliases for cleaner route signatures
Session = Annotated[AsyncSession, Depends(get_session)]
CurrentUser = Annotated[Operator, Depends(verify_basic_auth)]
ApiKeyAuth = Annotated[None, Depends(verify_api_key)]
RateLimited = Annotated[None, Depends(check_rate_limit)]


# Process-wide collaborators, created in the lifespan handler
def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_channels(request: Request) -> Sequence[NotificationChannel]:
    return request.app.state.channels


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


def get_scheduler(request: Request) -> QuietHoursScheduler:
    return request.app.state.scheduler


def get_classifier(request: Request) -> PlateClassifier:
    return request.app.state.classifier


def get_storage(request: Request) -> ImageStorage:
    return request.app.state.storage


HttpClient = Annotated[httpx.AsyncClient, Depends(get_http_client)]
Channels = Annotated[Sequence[NotificationChannel], Depends(get_channels)]
Dispatcher = Annotated[NotificationDispatcher, Depends(get_dispatcher)]
Scheduler = Annotated[QuietHoursScheduler, Depends(get_scheduler)]
Classifier = Annotated[PlateClassifier, Depends(get_classifier)]
Storage = Annotated[ImageStorage, Depends(get_storage)]


def get_telegram_channel(channels: Channels) -> TelegramChannel | None:
    return next((c for c in channels if isinstance(c, TelegramChannel)), None)


Telegram = Annotated[TelegramChannel | None, Depends(get_telegram_channel)]


async def get_runtime_config(session: Session) -> RuntimeConfig:
    """
    Dependency to load the operator-editable configuration.

    Read once per request; handlers pass it down explicitly.
    """
    return await load_runtime_config(SettingsRepository(session))


Config = Annotated[RuntimeConfig, Depends(get_runtime_config)]


async def get_hardware_service(session: Session, client: HttpClient) -> HardwareService:
    return HardwareService(session, client)


Hardware = Annotated[HardwareService, Depends(get_hardware_service)]


async def get_decision_engine(
    session: Session,
    hardware: Hardware,
    dispatcher: Dispatcher,
) -> AccessDecisionEngine:
    """
    Dependency to get the access decision engine.

    Args:
        session: Database session.
        hardware: Barrier operations bound to the same session.
        dispatcher: Notification dispatcher of the process.

    Returns:
        AccessDecisionEngine: Configured engine instance.
    """
    return AccessDecisionEngine(session, hardware, dispatcher)


async def get_recognition_use_case(
    session: Session,
    classifier: Classifier,
    storage: Storage,
    hardware: Hardware,
    dispatcher: Dispatcher,
) -> PlateRecognitionUseCase:
    return PlateRecognitionUseCase(session, classifier, storage, hardware, dispatcher)


async def get_notification_router(session: Session, channels: Channels) -> NotificationRouter:
    return NotificationRouter(session, channels)


async def get_blacklist_csv_service(session: Session) -> BlacklistCsvService:
    return BlacklistCsvService(session)


async def get_daily_summary_service(
    session: Session,
    router: Annotated[NotificationRouter, Depends(get_notification_router)],
) -> DailySummaryService:
    return DailySummaryService(session, router)


# Type aliases for use case dependencies
DecisionEngine = Annotated[AccessDecisionEngine, Depends(get_decision_engine)]
RecognitionUseCase = Annotated[PlateRecognitionUseCase, Depends(get_recognition_use_case)]
Router = Annotated[NotificationRouter, Depends(get_notification_router)]
BlacklistCsv = Annotated[BlacklistCsvService, Depends(get_blacklist_csv_service)]
DailySummary = Annotated[DailySummaryService, Depends(get_daily_summary_service)]
