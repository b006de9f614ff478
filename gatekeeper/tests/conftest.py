"""
Pytest configuration and fixtures.

Provides shared fixtures for testing including:
- File-backed SQLite sessions
- Recording notification channels and dispatchers
- Mocked barrier controllers
- Sample registry records
"""

import os

# Settings are read at import time; configure them before importing gatekeeper
os.environ.setdefault("API_KEY", "test-api-key-123")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_gatekeeper.db")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("QUIET_HOURS_DRAIN_INTERVAL_SECONDS", "0")

from typing import AsyncIterator

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from gatekeeper.application.dispatch import NotificationDispatcher
from gatekeeper.domain.models import (
    BarrierIntegration,
    BarrierType,
    BlacklistEntry,
    ChannelDelivery,
    NotificationEvent,
    RuntimeConfig,
    Severity,
    Vehicle,
)
from gatekeeper.infrastructure.db.models import Base
from gatekeeper.infrastructure.db.repository import (
    BlacklistRepository,
    IntegrationRepository,
    VehicleRepository,
)
from gatekeeper.infrastructure.notifications import NotificationChannel


class RecordingChannel(NotificationChannel):
    """Channel that keeps every event it was asked to send."""

    def __init__(self, name: str = "recording", succeed: bool = True, raises: bool = False):
        self.name = name
        self.succeed = succeed
        self.raises = raises
        self.sent: list[NotificationEvent] = []

    def is_enabled(self, config: RuntimeConfig) -> bool:
        return True

    async def send(self, event: NotificationEvent, config: RuntimeConfig) -> ChannelDelivery:
        if self.raises:
            raise RuntimeError(f"{self.name} exploded")
        self.sent.append(event)
        if self.succeed:
            return ChannelDelivery(channel=self.name, success=True)
        return ChannelDelivery(channel=self.name, success=False, error=f"{self.name} is down")


class CollectingDispatcher(NotificationDispatcher):
    """Dispatcher that only collects submitted events."""

    def __init__(self):
        self.events: list[NotificationEvent] = []

    async def submit(self, event: NotificationEvent, config: RuntimeConfig) -> None:
        self.events.append(event)

    @property
    def types(self) -> list:
        return [e.type for e in self.events]


class BarrierController:
    """
    Fake barrier controller behind an ``httpx.MockTransport``.

    Records every request and answers with ``status_code``.
    """

    def __init__(self, status_code: int = 200, payload: dict | None = None):
        self.status_code = status_code
        self.payload = payload if payload is not None else {"status": "open"}
        self.requests: list[httpx.Request] = []
        self.error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json=self.payload)


@pytest.fixture
async def session_factory(tmp_path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Session factory over a fresh file-backed SQLite database."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'gatekeeper.db'}",
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    await engine.dispose()


@pytest.fixture
async def db_session(session_factory) -> AsyncIterator[AsyncSession]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def config() -> RuntimeConfig:
    """Runtime configuration with notifications on and quiet hours off."""
    return RuntimeConfig(timezone="UTC")


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def dispatcher() -> CollectingDispatcher:
    return CollectingDispatcher()


@pytest.fixture
def controller() -> BarrierController:
    return BarrierController()


@pytest.fixture
async def barrier_client(controller) -> AsyncIterator[httpx.AsyncClient]:
    """HTTP client whose every request reaches ``controller``."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(controller)) as client:
        yield client


@pytest.fixture
async def primary_barrier(db_session) -> BarrierIntegration:
    """Active primary CAME barrier."""
    return await IntegrationRepository(db_session).create_barrier(
        BarrierIntegration(
            name="Main gate",
            type=BarrierType.CAME,
            host="10.0.0.20",
            username="admin",
            password="secret",
            timeout_ms=2000,
            is_primary=True,
        )
    )


@pytest.fixture
async def allowed_vehicle(db_session) -> Vehicle:
    return await VehicleRepository(db_session).create(
        Vehicle(license_plate="A123BC777", owner_name="Jane Doe", vehicle_model="Skoda Octavia")
    )


@pytest.fixture
async def blacklist_entry(db_session) -> BlacklistEntry:
    return await BlacklistRepository(db_session).create(
        BlacklistEntry(
            license_plate="X666XX666",
            severity=Severity.HIGH,
            reason="Repeated trespassing",
            owner_name="John Roe",
        )
    )


@pytest.fixture
def channel_factory() -> type[RecordingChannel]:
    """Build extra channels, e.g. ``channel_factory("telegram", succeed=False)``."""
    return RecordingChannel
