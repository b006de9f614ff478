"""Notification channel adapters (e-mail, Telegram)."""

from gatekeeper.infrastructure.notifications.channels import (
    EmailChannel,
    NotificationChannel,
    TelegramChannel,
    TelegramVerification,
)

__all__ = ["EmailChannel", "NotificationChannel", "TelegramChannel", "TelegramVerification"]
