"""Tests for the LLM client."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from fxwatch.config.settings import ConfigError
from fxwatch.summarization.config import SummarizerConfig
from fxwatch.summarization.llm_client import LLMClient, SummarizeError
from fxwatch.summarization.schemas import Sentiment


def _completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _sdk(*contents: str | None | Exception) -> MagicMock:
    sdk = MagicMock()
    sdk.chat.completions.create = AsyncMock(
        side_effect=[c if isinstance(c, Exception) else _completion(c) for c in contents]
    )
    return sdk


SUMMARY_JSON = json.dumps({
    "title": "Le dollar panse ses plaies",
    "introduction": "Le dollar recule après des payrolls décevants.",
    "currencies": {
        "usd": {"sentiment": "Baissier", "summary": "Sous pression.", "factors": "Fed"},
        "EUR": {"sentiment": "haussier", "summary": "Près de 1,10.", "factors": ["BCE"]},
    },
    "conclusion": "Biais baissier.",
    "keyTakeaway": "Vendre le dollar sur rebond.",
    "tags": ["Fed", "#Payrolls"],
})


@pytest.fixture
def config() -> SummarizerConfig:
    return SummarizerConfig(api_key="test-key", circuit_failure_threshold=2)


class TestLLMClient:
    """Tests for LLMClient."""

    def test_not_configured_without_key(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        monkeypatch.delenv("SUMMARIZER_API_KEY", raising=False)

        client = LLMClient(SummarizerConfig(api_key=None))

        assert not client.is_configured

    @pytest.mark.asyncio
    async def test_missing_key_raises_config_error(self, sample_article):
        client = LLMClient(SummarizerConfig(api_key=None))

        with pytest.raises(ConfigError):
            await client.summarize_article(sample_article)

    @pytest.mark.asyncio
    async def test_summarize_article(self, config, sample_article):
        sdk = _sdk(SUMMARY_JSON)
        client = LLMClient(config, client=sdk)

        summary = await client.summarize_article(sample_article)

        assert summary.title == "Le dollar panse ses plaies"
        assert summary.currencies["USD"].sentiment is Sentiment.BEARISH
        assert summary.currencies["USD"].factors == ["Fed"]
        assert summary.currencies["EUR"].sentiment is Sentiment.BULLISH
        assert summary.key_takeaway == "Vendre le dollar sur rebond."
        assert summary.tags == ["#Fed", "#Payrolls"]
        assert summary.mentioned_currencies == ["USD", "EUR"]
        assert not summary.is_fallback

        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["model"] == config.model
        assert "USD, EUR" in kwargs["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_content_is_truncated(self, sample_article):
        config = SummarizerConfig(api_key="k", max_content_chars=1000)
        sdk = _sdk(SUMMARY_JSON)
        article = sample_article.model_copy(update={"content": "x" * 5000})

        await LLMClient(config, client=sdk).summarize_article(article)

        prompt = sdk.chat.completions.create.call_args.kwargs["messages"][1]["content"]
        assert "x" * 1000 in prompt
        assert "x" * 1001 not in prompt

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[1, 2]",
            json.dumps({"title": "t", "currencies": ["USD"]}),
            json.dumps({"title": "t"}),
        ],
    )
    async def test_unusable_response(self, config, sample_article, raw):
        client = LLMClient(config, client=_sdk(raw))

        with pytest.raises(SummarizeError):
            await client.summarize_article(sample_article)

    @pytest.mark.asyncio
    async def test_empty_response(self, config, sample_article):
        with pytest.raises(SummarizeError, match="Empty response"):
            await LLMClient(config, client=_sdk(None)).summarize_article(sample_article)

    @pytest.mark.asyncio
    async def test_sdk_error_wrapped(self, config):
        client = LLMClient(config, client=_sdk(RuntimeError("503 from upstream")))

        with pytest.raises(SummarizeError, match="RuntimeError"):
            await client.complete("Bonjour")

    @pytest.mark.asyncio
    async def test_breaker_fails_fast(self, config):
        sdk = _sdk(RuntimeError("down"), RuntimeError("down"), "never used")
        client = LLMClient(config, client=sdk)

        for _ in range(2):
            with pytest.raises(SummarizeError):
                await client.complete("Bonjour")
        with pytest.raises(SummarizeError, match="open"):
            await client.complete("Bonjour")

        assert sdk.chat.completions.create.await_count == 2

    @pytest.mark.asyncio
    async def test_complete(self, config):
        sdk = _sdk("Bonne journée de trading !")
        client = LLMClient(config, client=sdk)

        answer = await client.complete("Bonjour", temperature=0.3)

        assert answer == "Bonne journée de trading !"
        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs["temperature"] == 0.3
        assert "response_format" not in kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "Bonjour"}]

    @pytest.mark.asyncio
    async def test_close(self, config):
        sdk = _sdk()
        sdk.close = AsyncMock()
        client = LLMClient(config, client=sdk)

        await client.close()

        sdk.close.assert_awaited_once()
