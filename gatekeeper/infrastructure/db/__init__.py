"""Database infrastructure package."""

from gatekeeper.infrastructure.db.models import Base
from gatekeeper.infrastructure.db.repository import (
    BarrierActionRepository,
    BlacklistRepository,
    IntegrationRepository,
    NotificationRepository,
    PassageRepository,
    SettingsRepository,
    VehicleRepository,
)
from gatekeeper.infrastructure.db.session import (
    close_db,
    get_session,
    get_session_factory,
    init_db,
)

__all__ = [
    # Models
    "Base",
    # Repositories
    "VehicleRepository",
    "BlacklistRepository",
    "PassageRepository",
    "BarrierActionRepository",
    "NotificationRepository",
    "IntegrationRepository",
    "SettingsRepository",
    # Session
    "get_session",
    "get_session_factory",
    "init_db",
    "close_db",
]
