"""
Notification dispatchers.

The decision flow hands its events to a dispatcher once the passage is
written. The background dispatcher runs each dispatch in its own task and
database session so the barrier path never waits for a channel; the inline
dispatcher awaits delivery in the caller's session and is used in tests and
scripts.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gatekeeper.application.notification_router import NotificationRouter
from gatekeeper.core.logging import get_logger
from gatekeeper.domain.models import NotificationEvent, RuntimeConfig
from gatekeeper.infrastructure.notifications import NotificationChannel

logger = get_logger(__name__)


class NotificationDispatcher(ABC):
    """Accepts events for delivery."""

    @abstractmethod
    async def submit(self, event: NotificationEvent, config: RuntimeConfig) -> None:
        """Hand over one event. Must not raise for delivery failures."""


class InlineDispatcher(NotificationDispatcher):
    """Dispatch within the caller's unit of work."""

    def __init__(self, router: NotificationRouter):
        self._router = router

    async def submit(self, event: NotificationEvent, config: RuntimeConfig) -> None:
        await self._router.dispatch(event, config)


class BackgroundDispatcher(NotificationDispatcher):
    """
    Dispatch in detached asyncio tasks.

    Each task opens and commits its own session. Failures are logged; the
    event outcome is already recorded by the router when it gets that far.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        channels: Sequence[NotificationChannel],
    ):
        self._session_factory = session_factory
        self._channels = channels
        self._tasks: set[asyncio.Task] = set()

    async def submit(self, event: NotificationEvent, config: RuntimeConfig) -> None:
        # the task inherits the request context, correlation id included
        task = asyncio.create_task(self._run(event, config))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, event: NotificationEvent, config: RuntimeConfig) -> None:
        try:
            async with self._session_factory() as session:
                router = NotificationRouter(session, self._channels)
                await router.dispatch(event, config)
                await session.commit()
        except Exception as e:
            logger.error(
                "notification_dispatch_failed",
                event_type=event.type.value,
                error=str(e),
            )

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def wait_idle(self) -> None:
        """Wait until every submitted dispatch has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Let in-flight dispatches finish; called on application shutdown."""
        if self._tasks:
            logger.info("dispatcher_draining", tasks=len(self._tasks))
        await self.wait_idle()
