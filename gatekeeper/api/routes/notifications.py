"""
Notification API routes.

History, manual resend, quiet hours configuration and drain, daily summary
and Telegram bot verification. Operator access only.
"""

from datetime import date, datetime, timedelta
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, status
from pydantic import BaseModel, Field

from gatekeeper.api.deps import Config, CurrentUser, DailySummary, Router, Scheduler, Session, Telegram
from gatekeeper.application.runtime_config import save_quiet_hours
from gatekeeper.core.logging import get_logger
from gatekeeper.domain.exceptions import NotFoundError, ValidationError
from gatekeeper.domain.models import (
    NotificationEvent,
    NotificationStatus,
    NotificationType,
    QuietHoursConfig,
    Severity,
    utc_now,
)
from gatekeeper.infrastructure.db.repository import NotificationRepository, SettingsRepository

logger = get_logger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


class NotificationResponse(BaseModel):
    """Response model for a notification event."""

    id: int
    type: NotificationType
    title: str
    message: str
    severity: Severity
    license_plate: str | None
    photo_url: str | None
    status: NotificationStatus
    channels: list[str]
    error_message: str | None
    retry_count: int
    digest_id: int | None
    created_at: datetime
    last_retry_at: datetime | None
    sent_at: datetime | None

    @classmethod
    def from_domain(cls, event: NotificationEvent) -> "NotificationResponse":
        return cls(
            id=event.id,
            type=event.type,
            title=event.title,
            message=event.message,
            severity=event.severity,
            license_plate=event.license_plate,
            photo_url=event.photo_url,
            status=event.status,
            channels=event.channels,
            error_message=event.error_message,
            retry_count=event.retry_count,
            digest_id=event.digest_id,
            created_at=event.created_at,
            last_retry_at=event.last_retry_at,
            sent_at=event.sent_at,
        )


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    count: int


class ResendResponse(BaseModel):
    success: bool
    error_message: str | None = None


class DrainResponse(BaseModel):
    sent: int
    failed: int
    drained: int
    digest_id: int | None = None


class DailySummaryRequest(BaseModel):
    day: date | None = Field(default=None, description="Day to summarize; yesterday (UTC) by default")


class DispatchResponse(BaseModel):
    queued: bool
    sent: bool
    event_id: int | None = None


class QuietHoursModel(BaseModel):
    """Quiet hours window; start after end wraps past midnight."""

    enabled: bool = False
    start: str = Field(default="22:00", examples=["22:00"])
    end: str = Field(default="07:00", examples=["07:00"])
    bypass_critical: bool = True


class QuietHoursResponse(QuietHoursModel):
    is_active: bool
    pending_count: int
    timezone: str


class TelegramVerifyRequest(BaseModel):
    bot_token: str = Field(..., min_length=1)
    chat_id: str = Field(..., min_length=1)


class TelegramVerifyResponse(BaseModel):
    success: bool
    bot_username: str | None = None
    error: str | None = None


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List notifications",
)
async def list_notifications(
    db: Session,
    _: CurrentUser,
    status_filter: NotificationStatus | None = Query(None, alias="status"),
    type_filter: NotificationType | None = Query(None, alias="type"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> NotificationListResponse:
    events = await NotificationRepository(db).list_events(
        status=status_filter,
        type=type_filter,
        limit=limit,
        offset=offset,
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.from_domain(e) for e in events],
        count=len(events),
    )


@router.post(
    "/drain",
    response_model=DrainResponse,
    summary="Drain quiet hours queue",
    description="Send every pending notification now as one digest.",
)
async def drain_queue(
    scheduler: Scheduler,
    config: Config,
    _: CurrentUser,
) -> DrainResponse:
    result = await scheduler.drain(config)
    return DrainResponse(
        sent=result.sent,
        failed=result.failed,
        drained=result.drained,
        digest_id=result.digest_id,
    )


@router.post(
    "/daily-summary",
    response_model=DispatchResponse,
    summary="Send daily summary",
)
async def send_daily_summary(
    request: DailySummaryRequest,
    service: DailySummary,
    config: Config,
    _: CurrentUser,
) -> DispatchResponse:
    day = request.day or (utc_now().date() - timedelta(days=1))
    result = await service.send(day, config)
    return DispatchResponse(queued=result.queued, sent=result.sent, event_id=result.event_id)


@router.get(
    "/quiet-hours",
    response_model=QuietHoursResponse,
    summary="Get quiet hours",
)
async def get_quiet_hours(
    db: Session,
    scheduler: Scheduler,
    config: Config,
    _: CurrentUser,
) -> QuietHoursResponse:
    quiet = config.quiet_hours
    return QuietHoursResponse(
        enabled=quiet.enabled,
        start=quiet.start,
        end=quiet.end,
        bypass_critical=quiet.bypass_critical,
        is_active=scheduler.is_active(utc_now(), config),
        pending_count=await NotificationRepository(db).count_pending(),
        timezone=config.timezone,
    )


@router.put(
    "/quiet-hours",
    response_model=QuietHoursModel,
    summary="Update quiet hours",
    responses={422: {"description": "Invalid HH:MM value"}},
)
async def update_quiet_hours(
    request: QuietHoursModel,
    db: Session,
    user: CurrentUser,
) -> QuietHoursModel:
    try:
        saved = await save_quiet_hours(
            SettingsRepository(db),
            QuietHoursConfig(
                enabled=request.enabled,
                start=request.start,
                end=request.end,
                bypass_critical=request.bypass_critical,
            ),
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    logger.info(
        "quiet_hours_updated",
        enabled=saved.enabled,
        start=saved.start,
        end=saved.end,
        operator=user.username,
    )
    return QuietHoursModel(
        enabled=saved.enabled,
        start=saved.start,
        end=saved.end,
        bypass_critical=saved.bypass_critical,
    )


@router.post(
    "/telegram/verify",
    response_model=TelegramVerifyResponse,
    summary="Verify Telegram bot",
    description="Check the bot token and send a test message to the chat.",
)
async def verify_telegram(
    request: TelegramVerifyRequest,
    telegram: Telegram,
    _: CurrentUser,
) -> TelegramVerifyResponse:
    if telegram is None:
        return TelegramVerifyResponse(success=False, error="Telegram channel is not available")
    result = await telegram.verify(request.bot_token, request.chat_id)
    return TelegramVerifyResponse(
        success=result.success,
        bot_username=result.bot_username,
        error=result.error,
    )


@router.get(
    "/{event_id}",
    response_model=NotificationResponse,
    summary="Get notification",
)
async def get_notification(
    event_id: Annotated[int, Path(description="Notification ID")],
    db: Session,
    _: CurrentUser,
) -> NotificationResponse:
    event = await NotificationRepository(db).get_by_id(event_id)
    if event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return NotificationResponse.from_domain(event)


@router.post(
    "/{event_id}/resend",
    response_model=ResendResponse,
    summary="Resend notification",
    description="Deliver again now; quiet hours are not applied.",
)
async def resend_notification(
    event_id: Annotated[int, Path(description="Notification ID")],
    notification_router: Router,
    config: Config,
    _: CurrentUser,
) -> ResendResponse:
    try:
        result = await notification_router.resend(event_id, config)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return ResendResponse(success=result.success, error_message=result.error_message)
