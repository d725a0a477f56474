"""Tests for the Telegram and email channels and the dispatcher."""

import json
import smtplib
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
import respx

from fxwatch.config.settings import ConfigError
from fxwatch.delivery.channels import (
    DeliveryError,
    EmailChannel,
    OutboundMessage,
    TelegramChannel,
    inline_keyboard,
)
from fxwatch.delivery.config import EmailConfig, TelegramConfig
from fxwatch.delivery.dispatcher import Dispatcher
from fxwatch.ingestion.http_client import HTTPClient, RetryConfig

API = "https://api.telegram.org/bottest-token"
RESEND_URL = "https://api.resend.com/emails"


def _client() -> HTTPClient:
    return HTTPClient(retry_config=RetryConfig(max_retries=0))


def _telegram(token: str | None = "test-token") -> TelegramChannel:
    return TelegramChannel(TelegramConfig(bot_token=token), client_factory=_client)


def _email(**overrides) -> EmailChannel:
    values = {
        "recipients": "trader@example.com",
        "resend_api_key": None,
        "smtp_host": None,
        "smtp_user": None,
        "smtp_password": None,
    }
    values.update(overrides)
    return EmailChannel(EmailConfig(**values), client_factory=_client)


MESSAGE = OutboundMessage(
    text="<b>FX Daily</b>",
    subject="📊 FX Daily : Le dollar recule",
    html="<html><body>Le dollar recule</body></html>",
    plain_text="Le dollar recule",
)


class TestTelegramChannel:
    """Tests for TelegramChannel."""

    def test_inline_keyboard(self):
        assert inline_keyboard([[("ING", "sub:ing")]]) == {
            "inline_keyboard": [[{"text": "ING", "callback_data": "sub:ing"}]]
        }

    @pytest.mark.asyncio
    @respx.mock
    async def test_send_message_payload(self):
        route = respx.post(f"{API}/sendMessage").mock(
            return_value=httpx.Response(200, json={"ok": True, "result": {"message_id": 1}})
        )
        keyboard = inline_keyboard([[("Sources", "sources")]])

        await _telegram().send("123", OutboundMessage(text="<b>Salut</b>", reply_markup=keyboard))

        payload = json.loads(route.calls.last.request.content)
        assert payload == {
            "chat_id": "123",
            "text": "<b>Salut</b>",
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
            "reply_markup": keyboard,
        }

    @pytest.mark.asyncio
    @respx.mock
    async def test_long_message_split_keyboard_on_last(self):
        route = respx.post(f"{API}/sendMessage").mock(
            return_value=httpx.Response(200, json={"ok": True, "result": {}})
        )
        text = "\n".join(["x" * 3000, "y" * 3000])
        keyboard = inline_keyboard([[("Sources", "sources")]])

        await _telegram().send("123", OutboundMessage(text=text, reply_markup=keyboard))

        payloads = [json.loads(c.request.content) for c in route.calls]
        assert [p["text"] for p in payloads] == ["x" * 3000, "y" * 3000]
        assert "reply_markup" not in payloads[0]
        assert payloads[1]["reply_markup"] == keyboard

    @pytest.mark.asyncio
    @respx.mock
    async def test_not_ok_reply(self):
        respx.post(f"{API}/sendMessage").mock(
            return_value=httpx.Response(
                200, json={"ok": False, "description": "Bad Request: chat not found"}
            )
        )

        with pytest.raises(DeliveryError, match="chat not found"):
            await _telegram().send_text("123", "Salut")

    @pytest.mark.asyncio
    @respx.mock
    async def test_blocked_by_user(self):
        respx.post(f"{API}/sendMessage").mock(
            return_value=httpx.Response(
                403, json={"ok": False, "description": "Forbidden: bot was blocked by the user"}
            )
        )

        with pytest.raises(DeliveryError, match="blocked"):
            await _telegram().send_text("123", "Salut")

    @pytest.mark.asyncio
    async def test_missing_token(self):
        with pytest.raises(ConfigError):
            await _telegram(token=None).send_text("123", "Salut")

    @pytest.mark.asyncio
    @respx.mock
    async def test_api_call_returns_result(self):
        respx.post(f"{API}/getUpdates").mock(
            return_value=httpx.Response(200, json={"ok": True, "result": [{"update_id": 5}]})
        )

        result = await _telegram().api_call("getUpdates", {"offset": 0})

        assert result == [{"update_id": 5}]

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_json_reply(self):
        respx.post(f"{API}/sendMessage").mock(
            return_value=httpx.Response(200, text="<html>proxy error</html>")
        )

        with pytest.raises(DeliveryError, match="non-JSON"):
            await _telegram().send_text("123", "Salut")


class TestEmailChannel:
    """Tests for EmailChannel."""

    @pytest.mark.asyncio
    async def test_not_configured(self):
        channel = _email()

        assert not channel.is_configured
        with pytest.raises(ConfigError):
            await channel.send("trader@example.com", MESSAGE)

    @pytest.mark.asyncio
    @respx.mock
    async def test_resend(self):
        route = respx.post(RESEND_URL).mock(return_value=httpx.Response(200, json={"id": "em_1"}))

        await _email(resend_api_key="re_test").send("trader@example.com", MESSAGE)

        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer re_test"
        payload = json.loads(request.content)
        assert payload["to"] == ["trader@example.com"]
        assert payload["subject"] == MESSAGE.subject
        assert payload["html"] == MESSAGE.html
        assert payload["text"] == "Le dollar recule"

    @pytest.mark.asyncio
    @respx.mock
    async def test_resend_failure_without_smtp(self):
        respx.post(RESEND_URL).mock(return_value=httpx.Response(422, text="invalid from"))

        with pytest.raises(DeliveryError, match="invalid from"):
            await _email(resend_api_key="re_test").send("trader@example.com", MESSAGE)

    @pytest.mark.asyncio
    @respx.mock
    async def test_resend_unreadable_reply(self):
        respx.post(RESEND_URL).mock(return_value=httpx.Response(200, text="<html>gateway</html>"))

        with pytest.raises(DeliveryError, match="unreadable"):
            await _email(resend_api_key="re_test").send("trader@example.com", MESSAGE)

    @pytest.mark.asyncio
    @respx.mock
    async def test_resend_failure_falls_back_to_smtp(self):
        respx.post(RESEND_URL).mock(return_value=httpx.Response(500))
        channel = _email(
            resend_api_key="re_test",
            smtp_host="smtp.example.com",
            smtp_user="bot@example.com",
            smtp_password="secret",
        )

        with patch("fxwatch.delivery.channels.smtplib.SMTP") as smtp_cls:
            server = smtp_cls.return_value.__enter__.return_value
            await channel.send("trader@example.com", MESSAGE)

        smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=20.0)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("bot@example.com", "secret")
        sent = server.send_message.call_args.args[0]
        assert sent["To"] == "trader@example.com"
        assert sent.get_content_type() == "multipart/alternative"

    @pytest.mark.asyncio
    async def test_smtp_ssl_on_port_465(self):
        channel = _email(
            smtp_host="smtp.gmail.com",
            smtp_port=465,
            smtp_user="bot@example.com",
            smtp_password="secret",
        )

        with patch("fxwatch.delivery.channels.smtplib.SMTP_SSL") as ssl_cls:
            server = ssl_cls.return_value.__enter__.return_value
            await channel.send("trader@example.com", MESSAGE)

        assert ssl_cls.call_args.args == ("smtp.gmail.com", 465)
        server.send_message.assert_called_once()
        server.starttls.assert_not_called()

    @pytest.mark.asyncio
    async def test_smtp_error(self):
        channel = _email(smtp_host="smtp.example.com", smtp_user="u", smtp_password="p")

        with patch("fxwatch.delivery.channels.smtplib.SMTP") as smtp_cls:
            smtp_cls.return_value.__enter__.return_value.login.side_effect = (
                smtplib.SMTPAuthenticationError(535, b"bad credentials")
            )
            with pytest.raises(DeliveryError, match="SMTP error"):
                await channel.send("trader@example.com", MESSAGE)


class TestDispatcher:
    """Tests for Dispatcher."""

    @staticmethod
    def _channel(side_effect=None) -> MagicMock:
        channel = MagicMock()
        channel.name = "telegram"
        channel.send = AsyncMock(side_effect=side_effect)
        return channel

    @pytest.mark.asyncio
    async def test_delivers_to_all(self, metrics):
        channel = self._channel()

        report = await Dispatcher(channel, metrics).dispatch({"2", "1"}, MESSAGE)

        assert report.delivered == ["1", "2"]
        assert report.failed == {}
        assert [c.args[0] for c in channel.send.await_args_list] == ["1", "2"]
        assert metrics.registry.get_sample_value(
            "fxwatch_deliveries_total", {"channel": "telegram", "status": "success"}
        ) == 2.0

    @pytest.mark.asyncio
    async def test_failure_isolated(self, metrics):
        async def send(recipient, message):
            if recipient == "2":
                raise DeliveryError("Forbidden: bot was blocked by the user")

        channel = self._channel(side_effect=send)

        report = await Dispatcher(channel, metrics).dispatch(["1", "2", "3"], MESSAGE)

        assert report.delivered == ["1", "3"]
        assert list(report.failed) == ["2"]
        assert report.total == 3
        assert metrics.registry.get_sample_value(
            "fxwatch_deliveries_total", {"channel": "telegram", "status": "failed"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_unconfigured_channel_stops(self, metrics):
        channel = self._channel(side_effect=ConfigError("TELEGRAM_BOT_TOKEN is not set"))

        report = await Dispatcher(channel, metrics).dispatch(["1", "2"], MESSAGE)

        assert report.delivered == []
        assert set(report.failed) == {"1", "2"}
        assert channel.send.await_count == 1

    @pytest.mark.asyncio
    async def test_no_recipients(self, metrics):
        channel = self._channel()

        report = await Dispatcher(channel, metrics).dispatch(set(), MESSAGE)

        assert report.total == 0
        channel.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_error_isolated(self, metrics):
        async def send(recipient, message):
            if recipient == "2":
                raise RuntimeError("socket closed")

        channel = self._channel(side_effect=send)

        report = await Dispatcher(channel, metrics).dispatch(["1", "2", "3"], MESSAGE)

        assert report.delivered == ["1", "3"]
        assert report.failed == {"2": "socket closed"}
        assert metrics.registry.get_sample_value(
            "fxwatch_deliveries_total", {"channel": "telegram", "status": "failed"}
        ) == 1.0

    @pytest.mark.asyncio
    @respx.mock
    async def test_garbled_telegram_reply_does_not_stop_batch(self, metrics):
        respx.post(f"{API}/sendMessage").mock(side_effect=[
            httpx.Response(200, text="<html>proxy error</html>"),
            httpx.Response(200, json={"ok": True, "result": {}}),
            httpx.Response(200, json={"ok": True, "result": {}}),
        ])

        report = await Dispatcher(_telegram(), metrics).dispatch(["1", "2", "3"], MESSAGE)

        assert report.delivered == ["2", "3"]
        assert list(report.failed) == ["1"]
