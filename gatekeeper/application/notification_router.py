"""
Notification routing.

Decides per event whether to deliver now or hold it for the quiet hours
digest, fans delivery out over the enabled channels and records the outcome
on the event. Channel failures are isolated from each other and from the
caller.
"""

import asyncio
from collections.abc import Sequence
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.core.logging import get_logger
from gatekeeper.domain.exceptions import NotFoundError
from gatekeeper.domain.models import (
    ChannelDelivery,
    DispatchResult,
    NotificationEvent,
    NotificationStatus,
    ResendResult,
    RuntimeConfig,
    utc_now,
)
from gatekeeper.domain.services import QuietHoursEvaluator
from gatekeeper.infrastructure.db.repository import NotificationRepository
from gatekeeper.infrastructure.notifications import NotificationChannel

logger = get_logger(__name__)

NO_CHANNELS_ENABLED = "No notification channels enabled"


def local_time(now: datetime, timezone: str) -> datetime:
    """
    Convert a naive UTC time to wall-clock time in ``timezone``.

    An unknown timezone is logged and treated as UTC.
    """
    try:
        zone = ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("unknown_timezone", timezone=timezone)
        zone = ZoneInfo("UTC")
    return now.replace(tzinfo=ZoneInfo("UTC")).astimezone(zone)


async def deliver_to_channels(
    channels: Sequence[NotificationChannel],
    event: NotificationEvent,
    config: RuntimeConfig,
) -> list[ChannelDelivery]:
    """
    Send one event over every enabled channel concurrently.

    A channel that raises is reported as a failed delivery; it never
    affects the other channels.
    """
    enabled = [c for c in channels if c.is_enabled(config)]

    async def send_one(channel: NotificationChannel) -> ChannelDelivery:
        try:
            return await channel.send(event, config)
        except Exception as e:
            logger.error(
                "notification_channel_failed",
                channel=channel.name,
                event_type=event.type.value,
                error=str(e),
            )
            return ChannelDelivery(channel=channel.name, success=False, error=str(e))

    return list(await asyncio.gather(*(send_one(c) for c in enabled)))


def summarize(deliveries: Sequence[ChannelDelivery]) -> tuple[bool, list[str], str | None]:
    """Overall success, successful channel names and joined error text."""
    if not deliveries:
        return False, [], NO_CHANNELS_ENABLED
    succeeded = [d.channel for d in deliveries if d.success]
    errors = [f"{d.channel}: {d.error}" for d in deliveries if not d.success]
    return bool(succeeded), succeeded, "; ".join(errors) or None


class NotificationRouter:
    """
    Routes notification events to channels or the quiet hours queue.

    Example:
        router = NotificationRouter(session, channels)
        result = await router.dispatch(event, config)
    """

    def __init__(
        self,
        session: AsyncSession,
        channels: Sequence[NotificationChannel],
        evaluator: QuietHoursEvaluator | None = None,
    ):
        self._repo = NotificationRepository(session)
        self._channels = channels
        self._evaluator = evaluator or QuietHoursEvaluator()

    async def dispatch(
        self,
        event: NotificationEvent,
        config: RuntimeConfig,
        now: datetime | None = None,
    ) -> DispatchResult:
        """
        Deliver an event now or queue it for the quiet hours digest.

        Args:
            event: Unsaved event.
            config: Runtime configuration of the calling flow.
            now: Current UTC time, naive.

        Returns:
            DispatchResult: Whether the event was queued or sent.
        """
        if not config.notifications_enabled:
            logger.debug("notifications_disabled", event_type=event.type.value)
            return DispatchResult(queued=False, sent=False)

        now = now or utc_now()
        wall_clock = local_time(now, config.timezone)

        if self._evaluator.should_queue(event.severity, wall_clock, config.quiet_hours):
            event.status = NotificationStatus.PENDING
            event.created_at = now
            saved = await self._repo.create(event)
            logger.info(
                "notification_queued",
                event_id=saved.id,
                event_type=event.type.value,
                severity=event.severity.value,
            )
            return DispatchResult(queued=True, sent=False, event_id=saved.id)

        saved = await self.deliver(event, config, now)
        return DispatchResult(
            queued=False,
            sent=saved.status == NotificationStatus.SENT,
            event_id=saved.id,
        )

    async def deliver(
        self,
        event: NotificationEvent,
        config: RuntimeConfig,
        now: datetime | None = None,
    ) -> NotificationEvent:
        """Deliver immediately and record the event as sent or failed."""
        deliveries = await deliver_to_channels(self._channels, event, config)
        return await self.record(event, deliveries, now or utc_now())

    async def record(
        self,
        event: NotificationEvent,
        deliveries: Sequence[ChannelDelivery],
        now: datetime,
    ) -> NotificationEvent:
        """Persist an event with the outcome of its channel deliveries."""
        success, succeeded, error = summarize(deliveries)

        event.status = NotificationStatus.SENT if success else NotificationStatus.FAILED
        event.channels = succeeded
        event.error_message = error
        event.created_at = now
        event.sent_at = now if success else None
        saved = await self._repo.create(event)

        log = logger.info if success else logger.warning
        log(
            "notification_delivered" if success else "notification_failed",
            event_id=saved.id,
            event_type=event.type.value,
            channels=succeeded,
            error=error,
        )
        return saved

    async def resend(
        self,
        event_id: int,
        config: RuntimeConfig,
        now: datetime | None = None,
    ) -> ResendResult:
        """
        Retry delivery of a recorded event.

        Quiet hours are not consulted again; the event is sent now.

        Raises:
            NotFoundError: If the event does not exist.
        """
        event = await self._repo.get_by_id(event_id)
        if event is None:
            raise NotFoundError(f"Notification {event_id} not found")

        now = now or utc_now()
        deliveries = await deliver_to_channels(self._channels, event, config)
        success, succeeded, error = summarize(deliveries)

        await self._repo.record_retry(
            event_id,
            NotificationStatus.SENT if success else NotificationStatus.FAILED,
            succeeded,
            error,
            now,
        )
        logger.info(
            "notification_resent",
            event_id=event_id,
            success=success,
            retry_count=event.retry_count + 1,
        )
        return ResendResult(success=success, error_message=error)
