"""
Notification channel adapters.

Each channel turns a ``NotificationEvent`` into one delivery over its
transport and reports a ``ChannelDelivery``. Unconfigured channels fail
softly: the failure is logged and returned, never raised.
"""

import asyncio
import html
import smtplib
import ssl
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage
from typing import ClassVar

import httpx

from gatekeeper.core.config import Settings
from gatekeeper.core.logging import get_logger
from gatekeeper.domain.models import ChannelDelivery, NotificationEvent, RuntimeConfig

logger = get_logger(__name__)


class NotificationChannel(ABC):
    """Base class for notification transports."""

    name: ClassVar[str]

    @abstractmethod
    def is_enabled(self, config: RuntimeConfig) -> bool:
        """Whether the operator switched this channel on."""

    @abstractmethod
    async def send(self, event: NotificationEvent, config: RuntimeConfig) -> ChannelDelivery:
        """Deliver one event."""

    def _failed(self, error: str) -> ChannelDelivery:
        return ChannelDelivery(channel=self.name, success=False, error=error)


class EmailChannel(NotificationChannel):
    """
    Owner e-mail over SMTP.

    SMTP parameters come from the environment; ``smtplib`` is blocking, so
    sending runs in the default executor.
    """

    name = "email"

    def __init__(self, settings: Settings):
        self._settings = settings

    def is_enabled(self, config: RuntimeConfig) -> bool:
        return config.email_enabled

    async def send(self, event: NotificationEvent, config: RuntimeConfig) -> ChannelDelivery:
        if not self._settings.smtp_configured:
            logger.warning("email_not_configured", event_type=event.type.value)
            return self._failed("Email is not configured (missing SMTP host or owner address)")

        msg = EmailMessage()
        msg["Subject"] = event.title
        msg["From"] = self._settings.smtp_from_address
        msg["To"] = self._settings.owner_email
        body = event.message
        if event.photo_url:
            body = f"{body}\n\nPhoto: {event.photo_url}"
        msg.set_content(body)

        try:
            await asyncio.get_running_loop().run_in_executor(None, self._send_sync, msg)
        except smtplib.SMTPAuthenticationError as e:
            logger.error("email_auth_failed", error=str(e))
            return self._failed(f"SMTP authentication failed: {e}")
        except (smtplib.SMTPException, OSError) as e:
            logger.error("email_send_failed", error=str(e))
            return self._failed(f"SMTP error: {e}")

        logger.info("email_sent", event_type=event.type.value)
        return ChannelDelivery(channel=self.name, success=True)

    def _send_sync(self, msg: EmailMessage) -> None:
        settings = self._settings
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as server:
            if settings.smtp_use_tls:
                server.starttls(context=ssl.create_default_context())
            if settings.smtp_username and settings.smtp_password:
                server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(msg)


@dataclass(frozen=True)
class TelegramVerification:
    """Result of checking a bot token and chat id."""

    success: bool
    bot_username: str | None = None
    error: str | None = None


class TelegramChannel(NotificationChannel):
    """
    Telegram bot channel.

    Token and chat id are read from the runtime config on every send. The
    text goes out with ``sendMessage`` (HTML parse mode); a photo, when the
    event has a public one, follows with ``sendPhoto``. A failed photo does
    not fail the delivery.
    """

    name = "telegram"
    timeout_seconds: ClassVar[float] = 10.0

    def __init__(self, client: httpx.AsyncClient, api_base: str = "https://api.telegram.org"):
        self._client = client
        self._api_base = api_base.rstrip("/")

    def is_enabled(self, config: RuntimeConfig) -> bool:
        return config.telegram_enabled

    async def send(self, event: NotificationEvent, config: RuntimeConfig) -> ChannelDelivery:
        token, chat_id = config.telegram_bot_token, config.telegram_chat_id
        if not token or not chat_id:
            logger.warning("telegram_not_configured", event_type=event.type.value)
            return self._failed("Telegram bot token or chat id is not configured")

        error = await self._call(
            token,
            "sendMessage",
            {
                "chat_id": chat_id,
                "text": self.format_message(event),
                "parse_mode": "HTML",
                "disable_web_page_preview": True,
            },
        )
        if error:
            logger.error("telegram_send_failed", event_type=event.type.value, error=error)
            return self._failed(error)

        if event.photo_url and event.photo_url.startswith(("http://", "https://")):
            photo_error = await self._call(
                token,
                "sendPhoto",
                {"chat_id": chat_id, "photo": event.photo_url},
            )
            if photo_error:
                logger.warning("telegram_photo_failed", error=photo_error)

        logger.info("telegram_sent", event_type=event.type.value)
        return ChannelDelivery(channel=self.name, success=True)

    async def verify(self, token: str, chat_id: str) -> TelegramVerification:
        """
        Check a token with ``getMe`` and the chat with a test message.

        Args:
            token: Bot token to check.
            chat_id: Target chat id.

        Returns:
            TelegramVerification: Bot username on success, error otherwise.
        """
        try:
            response = await self._client.get(
                f"{self._api_base}/bot{token}/getMe",
                timeout=self.timeout_seconds,
            )
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            return TelegramVerification(success=False, error=f"Telegram API unreachable: {e}")

        if not isinstance(payload, dict):
            return TelegramVerification(success=False, error="Telegram API returned an unexpected payload")
        if not payload.get("ok"):
            return TelegramVerification(
                success=False,
                error=str(payload.get("description") or "Invalid bot token"),
            )
        bot = payload.get("result")
        bot_username = bot.get("username") if isinstance(bot, dict) else None

        error = await self._call(
            token,
            "sendMessage",
            {
                "chat_id": chat_id,
                "text": "<b>Gatekeeper</b>\n\nTelegram notifications are configured.",
                "parse_mode": "HTML",
            },
        )
        if error:
            return TelegramVerification(success=False, bot_username=bot_username, error=error)
        return TelegramVerification(success=True, bot_username=bot_username)

    @staticmethod
    def format_message(event: NotificationEvent) -> str:
        title = html.escape(event.title, quote=False)
        body = html.escape(event.message, quote=False)
        return f"<b>{title}</b>\n\n{body}"

    async def _call(self, token: str, method: str, payload: dict) -> str | None:
        """Call a Bot API method; returns an error description or None."""
        try:
            response = await self._client.post(
                f"{self._api_base}/bot{token}/{method}",
                json=payload,
                timeout=self.timeout_seconds,
            )
        except httpx.TimeoutException:
            return f"Telegram {method} timed out"
        except httpx.HTTPError as e:
            return f"Telegram {method} failed: {e}"

        try:
            data = response.json()
        except ValueError:
            return f"Telegram {method} returned HTTP {response.status_code}"
        if not isinstance(data, dict):
            return f"Telegram {method} returned HTTP {response.status_code}"
        if not data.get("ok"):
            return data.get("description") or f"Telegram {method} returned HTTP {response.status_code}"
        return None
