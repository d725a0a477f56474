"""Tests for the Telegram bot command handling."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from fxwatch.bot.conversation import ConversationState, ConversationTracker
from fxwatch.bot.service import HELP_TEXT, TelegramBot, parse_command
from fxwatch.config.settings import ConfigError
from fxwatch.delivery.channels import DeliveryError
from fxwatch.delivery.config import TelegramConfig
from fxwatch.ingestion.schemas import SourceKind
from fxwatch.sources.registry import SourceRegistry
from fxwatch.storage.json_store import StorageError
from fxwatch.summarization.llm_client import SummarizeError

CHAT = "12345"


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _message(text: str, chat_id: str = CHAT, update_id: int = 1) -> dict:
    return {
        "update_id": update_id,
        "message": {
            "message_id": 7,
            "from": {"id": int(chat_id), "first_name": "Alice"},
            "chat": {"id": int(chat_id), "type": "private"},
            "text": text,
        },
    }


def _callback(data: str, chat_id: str = CHAT) -> dict:
    return {
        "update_id": 2,
        "callback_query": {
            "id": "cb-1",
            "from": {"id": int(chat_id), "first_name": "Alice"},
            "message": {"message_id": 8, "chat": {"id": int(chat_id)}},
            "data": data,
        },
    }


@pytest.fixture
def channel() -> MagicMock:
    channel = MagicMock()
    channel.config = TelegramConfig(bot_token="test-token")
    channel.send_text = AsyncMock()
    channel.api_call = AsyncMock(return_value=True)
    return channel


@pytest.fixture
def questions() -> MagicMock:
    questions = MagicMock()
    questions.ask = AsyncMock(return_value="Selon ING, **le dollar** recule.")
    return questions


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def bot(channel, make_source, users, history, questions, clock) -> TelegramBot:
    registry = SourceRegistry([
        make_source("ing", name="ING Think FX"),
        make_source("investing", kind=SourceKind.GENERAL_NEWS, name="InvestingLive Feed"),
    ])
    return TelegramBot(
        channel,
        registry,
        users,
        history,
        questions,
        conversations=ConversationTracker(timeout_seconds=300, clock=clock),
    )


def _replies(channel: MagicMock) -> list[str]:
    return [c.args[1] for c in channel.send_text.await_args_list]


class TestParseCommand:
    def test_with_bot_name(self):
        assert parse_command("/subscribe@FxBot ing #USD") == ("subscribe", "ing #USD")

    def test_without_args(self):
        assert parse_command("/MySubs") == ("mysubs", "")


class TestConversationTracker:
    def test_expires(self, clock):
        tracker = ConversationTracker(timeout_seconds=300, clock=clock)
        tracker.await_tags("1", "ing")

        assert tracker.state("1") is ConversationState.AWAITING_TAGS
        clock.now += 301
        assert tracker.state("1") is ConversationState.IDLE
        assert len(tracker) == 0

    def test_reset(self, clock):
        tracker = ConversationTracker(clock=clock)
        tracker.await_tags("1", "ing")

        tracker.reset("1")

        assert tracker.get("1").source_id is None


class TestCommands:
    """Tests for TelegramBot.handle_update."""

    @pytest.mark.asyncio
    async def test_start_registers_user(self, bot, channel, users):
        await bot.handle_update(_message("/start"))

        assert users.get_user(CHAT).name == "Alice"
        assert "Bonjour Alice" in _replies(channel)[0]

    @pytest.mark.asyncio
    async def test_unknown_command(self, bot, channel):
        await bot.handle_update(_message("/frobnicate"))

        assert _replies(channel)[0].startswith("Commande inconnue.")
        assert HELP_TEXT in _replies(channel)[0]

    @pytest.mark.asyncio
    async def test_sources_with_keyboard(self, bot, channel):
        await bot.handle_update(_message("/sources"))

        text = _replies(channel)[0]
        assert "<code>ing</code> : ING Think FX (fx_daily)" in text
        keyboard = channel.send_text.await_args.kwargs["reply_markup"]
        assert keyboard["inline_keyboard"][0][0]["callback_data"] == "sub:ing"

    @pytest.mark.asyncio
    async def test_subscribe_with_tags(self, bot, channel, users):
        await bot.handle_update(_message("/subscribe ing #USD eur"))

        assert users.get_user(CHAT).subscription_for("ing").tags == ["#USD", "#eur"]
        assert "Filtre : #USD, #eur" in _replies(channel)[0]

    @pytest.mark.asyncio
    async def test_subscribe_all_content(self, bot, channel, users):
        await bot.handle_update(_message("/subscribe investing"))

        assert users.get_user(CHAT).subscription_for("investing").is_all_content
        assert "Tout le contenu" in _replies(channel)[0]

    @pytest.mark.asyncio
    async def test_subscribe_unknown_source(self, bot, channel, users):
        await bot.handle_update(_message("/subscribe bloomberg"))

        assert "source inconnue 'bloomberg'" in _replies(channel)[0]
        assert users.get_user(CHAT).subscriptions == []

    @pytest.mark.asyncio
    async def test_unsubscribe(self, bot, channel, users):
        await bot.handle_update(_message("/subscribe ing #USD #EUR"))
        await bot.handle_update(_message("/unsubscribe ing #usd"))

        assert users.get_user(CHAT).subscription_for("ing").tags == ["#EUR"]
        assert "Désabonnement effectué" in _replies(channel)[1]

        await bot.handle_update(_message("/unsubscribe investing"))
        assert "Aucun abonnement correspondant" in _replies(channel)[2]

    @pytest.mark.asyncio
    async def test_mysubs(self, bot, channel):
        await bot.handle_update(_message("/mysubs"))
        await bot.handle_update(_message("/subscribe ing #USD"))
        await bot.handle_update(_message("/subscribe investing"))
        await bot.handle_update(_message("/mysubs"))

        replies = _replies(channel)
        assert replies[0] == "📭 Aucun abonnement actif."
        assert "1. <b>ing</b> (Tags : #USD)" in replies[3]
        assert "2. <b>investing</b> (Tout)" in replies[3]

    @pytest.mark.asyncio
    async def test_search(self, bot, channel, history, sample_article, sample_summary):
        history.add_article(sample_article, sample_summary, "ing")

        await bot.handle_update(_message("/search #fed"))
        await bot.handle_update(_message("/search yen"))

        replies = _replies(channel)
        assert "1 résultat(s)" in replies[0]
        assert "Le dollar panse ses plaies" in replies[0]
        assert "Aucun résultat" in replies[1]

    @pytest.mark.asyncio
    async def test_ask(self, bot, channel, questions):
        await bot.handle_update(_message("/ask Pourquoi le dollar recule ?"))

        questions.ask.assert_awaited_once_with(CHAT, "Pourquoi le dollar recule ?")
        assert _replies(channel)[0] == "Selon ING, <b>le dollar</b> recule."
        keyboard = channel.send_text.await_args.kwargs["reply_markup"]
        assert keyboard["inline_keyboard"][0][0]["callback_data"] == "sources"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error,expected",
        [
            (ConfigError("no key"), "pas configuré"),
            (SummarizeError("down"), "Impossible de répondre"),
        ],
    )
    async def test_ask_errors(self, bot, channel, questions, error, expected):
        questions.ask.side_effect = error

        await bot.handle_update(_message("/ask Et le yen ?"))

        assert expected in _replies(channel)[0]

    @pytest.mark.asyncio
    async def test_plain_text_when_idle(self, bot, channel):
        await bot.handle_update(_message("bonjour"))
        assert _replies(channel) == [HELP_TEXT]

    @pytest.mark.asyncio
    async def test_ignores_updates_without_text(self, bot, channel):
        await bot.handle_update({"update_id": 3, "message": {"chat": {"id": 1}, "sticker": {}}})
        channel.send_text.assert_not_awaited()


class TestSubscribeConversation:
    @pytest.mark.asyncio
    async def test_callback_then_tags(self, bot, channel, users):
        await bot.handle_update(_callback("sub:ing"))

        channel.api_call.assert_awaited_once_with("answerCallbackQuery", {"callback_query_id": "cb-1"})
        assert bot.conversations.state(CHAT) is ConversationState.AWAITING_TAGS

        await bot.handle_update(_message("#GBP, #USD"))

        assert users.get_user(CHAT).subscription_for("ing").tags == ["#GBP", "#USD"]
        assert bot.conversations.state(CHAT) is ConversationState.IDLE

    @pytest.mark.asyncio
    async def test_reply_tout_means_all_content(self, bot, users):
        await bot.handle_update(_callback("sub:investing"))
        await bot.handle_update(_message("Tout"))

        assert users.get_user(CHAT).subscription_for("investing").is_all_content

    @pytest.mark.asyncio
    async def test_expired_prompt(self, bot, channel, users, clock):
        await bot.handle_update(_callback("sub:ing"))
        clock.now += 600

        await bot.handle_update(_message("#USD"))

        assert users.get_user(CHAT).subscriptions == []
        assert _replies(channel)[-1] == HELP_TEXT

    @pytest.mark.asyncio
    async def test_cancel(self, bot, users):
        await bot.handle_update(_callback("sub:ing"))
        await bot.handle_update(_message("/cancel"))
        await bot.handle_update(_message("#USD"))

        assert users.get_user(CHAT).subscriptions == []

    @pytest.mark.asyncio
    async def test_unknown_source_callback(self, bot, channel):
        await bot.handle_update(_callback("sub:bloomberg"))

        assert "Source inconnue" in _replies(channel)[0]
        assert bot.conversations.state(CHAT) is ConversationState.IDLE

    @pytest.mark.asyncio
    async def test_sources_callback(self, bot, channel):
        await bot.handle_update(_callback("sources"))
        assert "Sources disponibles" in _replies(channel)[0]


class TestPolling:
    @pytest.mark.asyncio
    async def test_poll_once_advances_offset(self, bot, channel):
        channel.api_call = AsyncMock(side_effect=[
            [_message("/help", update_id=41), _message("/help", update_id=42)],
            [],
        ])

        assert await bot.poll_once() == 2
        assert await bot.poll_once() == 0

        second_payload = channel.api_call.await_args_list[1].args[1]
        assert second_payload["offset"] == 43
        assert second_payload["allowed_updates"] == ["message", "callback_query"]

    @pytest.mark.asyncio
    async def test_reply_failure_does_not_stop_batch(self, bot, channel):
        channel.api_call = AsyncMock(return_value=[
            _message("/help", update_id=1),
            _message("/help", chat_id="999", update_id=2),
        ])
        channel.send_text = AsyncMock(side_effect=[DeliveryError("blocked"), None])

        assert await bot.poll_once() == 2
        assert channel.send_text.await_count == 2

    @pytest.mark.asyncio
    async def test_handler_error_does_not_stop_batch(self, bot, channel, users):
        channel.api_call = AsyncMock(return_value=[
            _message("/subscribe ing #USD", update_id=1),
            _message("/help", chat_id="999", update_id=2),
        ])

        with patch.object(users, "subscribe", side_effect=StorageError("disk full")):
            assert await bot.poll_once() == 2

        assert _replies(channel) == [HELP_TEXT]

    @pytest.mark.asyncio
    async def test_run_survives_unexpected_errors(self, bot, channel, monkeypatch):
        monkeypatch.setattr("fxwatch.bot.service.RETRY_DELAY_SECONDS", 0)

        async def get_updates(method, payload):
            if channel.api_call.await_count == 1:
                raise ValueError("Expecting value")
            bot.stop()
            return []

        channel.api_call = AsyncMock(side_effect=get_updates)

        await asyncio.wait_for(bot.run(), timeout=1)

        assert channel.api_call.await_count == 2

    @pytest.mark.asyncio
    async def test_run_requires_token(self, bot, channel):
        channel.config = TelegramConfig(bot_token=None)

        with pytest.raises(ConfigError):
            await bot.run()
