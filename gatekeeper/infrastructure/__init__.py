"""Infrastructure layer package."""

from gatekeeper.infrastructure.db import close_db, get_session, init_db
from gatekeeper.infrastructure.hardware import BARRIER_ADAPTERS, CAMERA_ADAPTERS
from gatekeeper.infrastructure.notifications import (
    EmailChannel,
    NotificationChannel,
    TelegramChannel,
)
from gatekeeper.infrastructure.recognition import PlateClassifier, get_plate_classifier
from gatekeeper.infrastructure.storage import ImageStorage, StorageError

__all__ = [
    # Database
    "get_session",
    "init_db",
    "close_db",
    # Hardware
    "BARRIER_ADAPTERS",
    "CAMERA_ADAPTERS",
    # Notifications
    "NotificationChannel",
    "EmailChannel",
    "TelegramChannel",
    # Recognition
    "PlateClassifier",
    "get_plate_classifier",
    # Storage
    "ImageStorage",
    "StorageError",
]
