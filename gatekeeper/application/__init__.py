"""Application layer package - use cases and services."""

from gatekeeper.application.access_decision import AccessDecisionEngine
from gatekeeper.application.blacklist_csv import BlacklistCsvService
from gatekeeper.application.daily_summary import DailySummaryService
from gatekeeper.application.dispatch import (
    BackgroundDispatcher,
    InlineDispatcher,
    NotificationDispatcher,
)
from gatekeeper.application.hardware_service import HardwareService
from gatekeeper.application.notification_router import NotificationRouter
from gatekeeper.application.plate_recognition import PlateRecognitionUseCase
from gatekeeper.application.quiet_hours import QuietHoursScheduler
from gatekeeper.application.runtime_config import load_runtime_config

__all__ = [
    "AccessDecisionEngine",
    "BlacklistCsvService",
    "DailySummaryService",
    "NotificationDispatcher",
    "InlineDispatcher",
    "BackgroundDispatcher",
    "HardwareService",
    "NotificationRouter",
    "PlateRecognitionUseCase",
    "QuietHoursScheduler",
    "load_runtime_config",
]
