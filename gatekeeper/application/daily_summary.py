"""Daily passage summary."""

from datetime import date, datetime, time, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from gatekeeper.application.notification_router import NotificationRouter
from gatekeeper.core.logging import get_logger
from gatekeeper.domain import messages
from gatekeeper.domain.models import DispatchResult, PassageStats, RuntimeConfig
from gatekeeper.infrastructure.db.repository import PassageRepository

logger = get_logger(__name__)


class DailySummaryService:
    """Aggregates one day of the passage ledger and notifies the owner."""

    def __init__(self, session: AsyncSession, router: NotificationRouter):
        self._passages = PassageRepository(session)
        self._router = router

    async def stats_for(self, day: date) -> PassageStats:
        start = datetime.combine(day, time.min)
        return await self._passages.stats(start, start + timedelta(days=1))

    async def send(self, day: date, config: RuntimeConfig) -> DispatchResult:
        """
        Dispatch the summary for ``day`` (UTC).

        Returns ``queued=False, sent=False`` without building anything when
        the summary is switched off.
        """
        if not config.daily_summary_enabled:
            logger.info("daily_summary_disabled", day=day.isoformat())
            return DispatchResult(queued=False, sent=False)

        stats = await self.stats_for(day)
        result = await self._router.dispatch(messages.daily_summary(day, stats), config)
        logger.info(
            "daily_summary_dispatched",
            day=day.isoformat(),
            total=stats.total,
            queued=result.queued,
            sent=result.sent,
        )
        return result
