"""Delivery channel implementations.

Provides an ABC for delivery channels plus the Telegram Bot API channel
and the newsletter email channel (Resend HTTP API, SMTP fallback). A send
either succeeds or raises DeliveryError; callers isolate failures per
recipient.
"""

import asyncio
import logging
import smtplib
import ssl
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any

from fxwatch.config.settings import ConfigError
from fxwatch.delivery.config import EmailConfig, TelegramConfig
from fxwatch.delivery.formatting import split_message
from fxwatch.ingestion.base_adapter import ClientFactory
from fxwatch.ingestion.http_client import HTTPClient, HTTPClientError, RetryConfig

logger = logging.getLogger(__name__)


class DeliveryError(Exception):
    """Raised when a message cannot be delivered to a recipient."""


@dataclass
class OutboundMessage:
    """One message, with the renderings each channel needs.

    ``text`` is Telegram HTML; ``html``/``subject`` are used by email.
    """

    text: str
    subject: str = ""
    html: str | None = None
    plain_text: str | None = None
    reply_markup: dict[str, Any] | None = None


def inline_keyboard(rows: list[list[tuple[str, str]]]) -> dict[str, Any]:
    """Build a Telegram inline keyboard from ``(label, callback_data)`` rows."""
    return {
        "inline_keyboard": [
            [{"text": label, "callback_data": data} for label, data in row]
            for row in rows
        ]
    }


class DeliveryChannel(ABC):
    """Abstract base for delivery channels."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this channel (e.g. 'telegram', 'email')."""

    @abstractmethod
    async def send(self, recipient: str, message: OutboundMessage) -> None:
        """Deliver a message to one recipient.

        Raises:
            DeliveryError: If the message could not be delivered.
            ConfigError: If the channel has no credentials.
        """


class TelegramChannel(DeliveryChannel):
    """Telegram Bot API client used for outbound messages and by the bot poller.

    Long messages are split at line boundaries; the inline keyboard is
    attached to the last chunk only.
    """

    def __init__(
        self,
        config: TelegramConfig | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._config = config or TelegramConfig()
        self._client_factory = client_factory or self._default_client

    @property
    def name(self) -> str:
        return "telegram"

    @property
    def config(self) -> TelegramConfig:
        return self._config

    def _default_client(self) -> HTTPClient:
        return HTTPClient(
            retry_config=RetryConfig(max_retries=2, max_backoff_seconds=10.0),
            # Long polls must outlive the server-side wait
            timeout=self._config.timeout_seconds + self._config.poll_timeout_seconds,
        )

    def _method_url(self, method: str) -> str:
        if not self._config.is_configured:
            raise ConfigError("TELEGRAM_BOT_TOKEN is not set")
        token = self._config.bot_token.get_secret_value()
        return f"{self._config.api_base}/bot{token}/{method}"

    async def api_call(self, method: str, payload: dict[str, Any] | None = None) -> Any:
        """Call a Bot API method and return its ``result``.

        Raises:
            DeliveryError: On transport failure or an ``ok: false`` reply.
            ConfigError: If no bot token is configured.
        """
        url = self._method_url(method)
        try:
            async with self._client_factory() as client:
                response = await client.post(url, json_body=payload or {})
        except HTTPClientError as e:
            detail = e.response_body or str(e)
            raise DeliveryError(f"Telegram {method} failed: {detail}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise DeliveryError(f"Telegram {method} returned a non-JSON reply") from e

        if not isinstance(data, dict):
            raise DeliveryError(f"Telegram {method} returned an unexpected reply: {data!r}")
        if not data.get("ok"):
            raise DeliveryError(f"Telegram {method} failed: {data.get('description', data)}")
        return data.get("result")

    async def send(self, recipient: str, message: OutboundMessage) -> None:
        chunks = split_message(message.text)
        for i, chunk in enumerate(chunks):
            payload: dict[str, Any] = {
                "chat_id": recipient,
                "text": chunk,
                "parse_mode": "HTML",
                "disable_web_page_preview": True,
            }
            if message.reply_markup and i == len(chunks) - 1:
                payload["reply_markup"] = message.reply_markup
            await self.api_call("sendMessage", payload)

    async def send_text(
        self,
        chat_id: str,
        text: str,
        reply_markup: dict[str, Any] | None = None,
    ) -> None:
        await self.send(chat_id, OutboundMessage(text=text, reply_markup=reply_markup))


class EmailChannel(DeliveryChannel):
    """Newsletter email via the Resend HTTP API, falling back to SMTP.

    The recipient is an email address; the message must carry ``html``
    and ``subject``.
    """

    def __init__(
        self,
        config: EmailConfig | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._config = config or EmailConfig()
        self._client_factory = client_factory or self._default_client

    @property
    def name(self) -> str:
        return "email"

    @property
    def config(self) -> EmailConfig:
        return self._config

    @property
    def is_configured(self) -> bool:
        return self._config.resend_configured or self._config.smtp_configured

    def _default_client(self) -> HTTPClient:
        return HTTPClient(
            retry_config=RetryConfig(max_retries=1),
            timeout=self._config.timeout_seconds,
        )

    async def send(self, recipient: str, message: OutboundMessage) -> None:
        if not self.is_configured:
            raise ConfigError(
                "No email provider configured (set RESEND_API_KEY or SMTP_HOST/SMTP_USER/SMTP_PASSWORD)"
            )

        if self._config.resend_configured:
            try:
                await self._send_with_resend(recipient, message)
                return
            except DeliveryError as e:
                if not self._config.smtp_configured:
                    raise
                logger.warning("Resend failed for %s, trying SMTP: %s", recipient, e)

        await self._send_with_smtp(recipient, message)

    async def _send_with_resend(self, recipient: str, message: OutboundMessage) -> None:
        api_key = self._config.resend_api_key.get_secret_value()
        payload = {
            "from": self._config.resend_from,
            "to": [recipient],
            "subject": message.subject,
            "html": message.html or message.text,
        }
        if message.plain_text:
            payload["text"] = message.plain_text

        try:
            async with self._client_factory() as client:
                response = await client.post(
                    self._config.resend_api_url,
                    headers={"Authorization": f"Bearer {api_key}"},
                    json_body=payload,
                )
        except HTTPClientError as e:
            raise DeliveryError(f"Resend error: {e.response_body or e}") from e

        try:
            email_id = response.json().get("id")
        except (ValueError, AttributeError) as e:
            raise DeliveryError("Resend returned an unreadable reply") from e

        logger.info("Email sent via Resend to %s: %s", recipient, email_id)

    def _build_mime(self, recipient: str, message: OutboundMessage) -> MIMEMultipart:
        sender = self._config.smtp_from or f'"FX Newsletter" <{self._config.smtp_user}>'
        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.subject
        msg["From"] = sender
        msg["To"] = recipient
        if message.plain_text:
            msg.attach(MIMEText(message.plain_text, "plain", "utf-8"))
        msg.attach(MIMEText(message.html or message.text, "html", "utf-8"))
        return msg

    def _smtp_send(self, recipient: str, message: OutboundMessage) -> None:
        cfg = self._config
        msg = self._build_mime(recipient, message)
        password = cfg.smtp_password.get_secret_value()
        context = ssl.create_default_context()

        if cfg.smtp_port == 465:
            with smtplib.SMTP_SSL(cfg.smtp_host, cfg.smtp_port, context=context,
                                  timeout=cfg.timeout_seconds) as server:
                server.login(cfg.smtp_user, password)
                server.send_message(msg)
        else:
            with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=cfg.timeout_seconds) as server:
                server.starttls(context=context)
                server.login(cfg.smtp_user, password)
                server.send_message(msg)

    async def _send_with_smtp(self, recipient: str, message: OutboundMessage) -> None:
        try:
            await asyncio.to_thread(self._smtp_send, recipient, message)
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryError(f"SMTP error: {e}") from e
        logger.info("Email sent via SMTP to %s", recipient)
