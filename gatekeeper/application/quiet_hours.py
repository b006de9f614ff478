"""
Quiet hours scheduler.

Events held back during quiet hours stay pending until a drain folds them
into one digest. Drains in this process are serialized by a lock, work on a
snapshot of pending ids, and only mark rows that are still pending, so an
event queued mid-drain is simply left for the next one.
"""

import asyncio
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gatekeeper.application.notification_router import (
    NotificationRouter,
    deliver_to_channels,
    local_time,
    summarize,
)
from gatekeeper.application.runtime_config import load_runtime_config
from gatekeeper.core.logging import get_logger
from gatekeeper.domain import messages
from gatekeeper.domain.models import DrainResult, RuntimeConfig, utc_now
from gatekeeper.domain.services import QuietHoursEvaluator
from gatekeeper.infrastructure.db.repository import NotificationRepository, SettingsRepository
from gatekeeper.infrastructure.notifications import NotificationChannel

logger = get_logger(__name__)


class QuietHoursScheduler:
    """
    Drains the quiet hours queue.

    One instance per process; it owns the lock that serializes drains.

    Example:
        scheduler = QuietHoursScheduler(session_factory, channels)
        result = await scheduler.drain()
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        channels: Sequence[NotificationChannel],
        evaluator: QuietHoursEvaluator | None = None,
    ):
        self._session_factory = session_factory
        self._channels = channels
        self._evaluator = evaluator or QuietHoursEvaluator()
        self._lock = asyncio.Lock()

    def is_active(self, now: datetime, config: RuntimeConfig) -> bool:
        """Whether quiet hours are in effect at naive UTC ``now``."""
        return self._evaluator.is_active(local_time(now, config.timezone), config.quiet_hours)

    async def drain(
        self,
        config: RuntimeConfig | None = None,
        now: datetime | None = None,
    ) -> DrainResult:
        """
        Deliver every pending event as a single digest.

        Args:
            config: Runtime configuration; loaded from the settings store
                when omitted.
            now: Current UTC time, naive.

        Returns:
            DrainResult: Counts of events marked sent and left pending.
        """
        async with self._lock:
            async with self._session_factory() as session:
                result = await self._drain(session, config, now or utc_now())
                await session.commit()
        return result

    async def _drain(
        self,
        session: AsyncSession,
        config: RuntimeConfig | None,
        now: datetime,
    ) -> DrainResult:
        if config is None:
            config = await load_runtime_config(SettingsRepository(session))
        if not config.notifications_enabled:
            logger.info("quiet_hours_drain_skipped", reason="notifications_disabled")
            return DrainResult(sent=0, failed=0)

        repo = NotificationRepository(session)
        pending = await repo.list_pending()
        if not pending:
            return DrainResult(sent=0, failed=0)

        digest = messages.quiet_hours_digest(pending)
        deliveries = await deliver_to_channels(self._channels, digest, config)
        success, _, error = summarize(deliveries)

        # only a delivered digest is recorded
        if not success:
            logger.warning("quiet_hours_digest_failed", pending=len(pending), error=error)
            return DrainResult(sent=0, failed=len(pending), drained=len(pending))

        digest = await NotificationRouter(session, self._channels).record(digest, deliveries, now)
        marked = await repo.mark_sent([e.id for e in pending], digest.id, now)
        logger.info("quiet_hours_drained", sent=marked, digest_id=digest.id)
        return DrainResult(sent=marked, failed=0, drained=len(pending), digest_id=digest.id)

    async def run_periodic(self, interval_seconds: float) -> None:
        """
        Drain whenever quiet hours are over and events are waiting.

        Runs until cancelled. A failed iteration is logged and retried on the
        next tick.
        """
        logger.info("quiet_hours_loop_started", interval_seconds=interval_seconds)
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await self._tick()
            except Exception as e:
                logger.error("quiet_hours_tick_failed", error=str(e))

    async def _tick(self) -> None:
        async with self._session_factory() as session:
            config = await load_runtime_config(SettingsRepository(session))
            if self.is_active(utc_now(), config):
                return
            if await NotificationRepository(session).count_pending() == 0:
                return
        await self.drain(config)
