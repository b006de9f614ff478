"""
Operator-editable runtime configuration.

The settings store holds plain strings. This module owns the list of known
keys with their defaults and turns a snapshot of the store into a typed
``RuntimeConfig``. It is loaded once per call at the boundary (request or
background job) and passed down explicitly.
"""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from gatekeeper.core.config import get_settings
from gatekeeper.core.logging import get_logger
from gatekeeper.domain.exceptions import ValidationError
from gatekeeper.domain.models import QuietHoursConfig, RuntimeConfig
from gatekeeper.domain.services import parse_time_of_day
from gatekeeper.infrastructure.db.repository import SettingsRepository

logger = get_logger(__name__)

_TRUE_VALUES = {"true", "1", "yes", "on"}

SETTING_DEFAULTS: dict[str, tuple[str, str]] = {
    "notifications_enabled": ("true", "Master switch for all owner notifications"),
    "email_notifications_enabled": ("true", "Deliver notifications by e-mail"),
    "telegram_enabled": ("false", "Deliver notifications through the Telegram bot"),
    "telegram_bot_token": ("", "Telegram bot token"),
    "telegram_chat_id": ("", "Telegram chat receiving notifications"),
    "notify_allowed_passages": ("false", "Send a notice for every allowed passage"),
    "daily_summary_enabled": ("true", "Send the daily passage summary"),
    "unauthorized_attempt_threshold": (
        "3",
        "Denied attempts by one unknown plate within 24 hours before an alert",
    ),
    "timezone": ("", "IANA timezone for quiet hours (empty: server default)"),
    "quiet_hours_enabled": ("false", "Hold back non-urgent notifications at night"),
    "quiet_hours_start": ("22:00", "Quiet hours start, HH:MM"),
    "quiet_hours_end": ("07:00", "Quiet hours end, HH:MM"),
    "quiet_hours_bypass_critical": ("true", "Deliver high and critical events during quiet hours"),
}

BOOLEAN_KEYS = {
    "notifications_enabled",
    "email_notifications_enabled",
    "telegram_enabled",
    "notify_allowed_passages",
    "daily_summary_enabled",
    "quiet_hours_enabled",
    "quiet_hours_bypass_critical",
}


def parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def validate_setting(key: str, value: str) -> str:
    """
    Check a value before it is written to the store.

    Unknown keys are accepted as free-form values.

    Raises:
        ValidationError: If a known key gets a value it cannot hold.
    """
    value = value.strip()
    if key in ("quiet_hours_start", "quiet_hours_end"):
        try:
            parse_time_of_day(value)
        except ValueError as e:
            raise ValidationError(str(e)) from e
    elif key == "unauthorized_attempt_threshold":
        if not value.isdigit() or int(value) < 1:
            raise ValidationError("Threshold must be a positive integer")
    elif key == "timezone" and value:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValidationError(f"Unknown timezone: {value}") from e
    elif key in BOOLEAN_KEYS:
        return "true" if parse_bool(value) else "false"
    return value


async def load_runtime_config(repo: SettingsRepository) -> RuntimeConfig:
    """
    Read every known key in one query and build a ``RuntimeConfig``.

    Missing keys fall back to their defaults; unparsable numeric values are
    logged and replaced by the default.
    """
    stored = await repo.get_many(list(SETTING_DEFAULTS))

    def value(key: str) -> str:
        return stored.get(key, SETTING_DEFAULTS[key][0])

    try:
        threshold = max(1, int(value("unauthorized_attempt_threshold")))
    except ValueError:
        logger.warning(
            "invalid_setting_value",
            key="unauthorized_attempt_threshold",
            value=value("unauthorized_attempt_threshold"),
        )
        threshold = int(SETTING_DEFAULTS["unauthorized_attempt_threshold"][0])

    return RuntimeConfig(
        notifications_enabled=parse_bool(value("notifications_enabled")),
        email_enabled=parse_bool(value("email_notifications_enabled")),
        telegram_enabled=parse_bool(value("telegram_enabled")),
        telegram_bot_token=value("telegram_bot_token") or None,
        telegram_chat_id=value("telegram_chat_id") or None,
        notify_allowed_passages=parse_bool(value("notify_allowed_passages")),
        daily_summary_enabled=parse_bool(value("daily_summary_enabled")),
        unauthorized_attempt_threshold=threshold,
        timezone=value("timezone") or get_settings().timezone,
        quiet_hours=QuietHoursConfig(
            enabled=parse_bool(value("quiet_hours_enabled")),
            start=value("quiet_hours_start"),
            end=value("quiet_hours_end"),
            bypass_critical=parse_bool(value("quiet_hours_bypass_critical")),
        ),
    )


async def save_quiet_hours(repo: SettingsRepository, config: QuietHoursConfig) -> QuietHoursConfig:
    """Persist a quiet hours window after validating both bounds."""
    start = validate_setting("quiet_hours_start", config.start)
    end = validate_setting("quiet_hours_end", config.end)

    await repo.set("quiet_hours_start", start, SETTING_DEFAULTS["quiet_hours_start"][1])
    await repo.set("quiet_hours_end", end, SETTING_DEFAULTS["quiet_hours_end"][1])
    await repo.set(
        "quiet_hours_enabled",
        "true" if config.enabled else "false",
        SETTING_DEFAULTS["quiet_hours_enabled"][1],
    )
    await repo.set(
        "quiet_hours_bypass_critical",
        "true" if config.bypass_critical else "false",
        SETTING_DEFAULTS["quiet_hours_bypass_critical"][1],
    )
    return QuietHoursConfig(
        enabled=config.enabled,
        start=start,
        end=end,
        bypass_critical=config.bypass_critical,
    )
