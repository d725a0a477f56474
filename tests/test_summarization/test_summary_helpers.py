"""Tests for currency detection, the extractive fallback and the circuit breaker."""

import pytest

from fxwatch.ingestion.schemas import ArticleContent
from fxwatch.summarization.circuit_breaker import CircuitBreaker, CircuitOpenError, CircuitState
from fxwatch.summarization.currencies import currency_name, currency_tags, detect_currencies
from fxwatch.summarization.fallback import (
    FALLBACK_TAKEAWAY,
    candidate_sentences,
    extractive_summary,
)
from fxwatch.summarization.schemas import ArticleSummary, Sentiment


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestCurrencies:
    def test_section_headings(self, sample_article):
        assert detect_currencies(sample_article.content) == ["USD", "EUR"]

    def test_frequent_mentions(self):
        text = "JPY weakened. The JPY slide. JPY again, and jpy once more."
        assert detect_currencies(text) == ["JPY"]

    def test_few_mentions_ignored(self):
        assert detect_currencies("GBP rose, GBP fell.") == []

    def test_tags_and_names(self):
        assert currency_tags(["usd", "EUR"]) == ["#USD", "#EUR"]
        assert currency_name("chf") == "Franc suisse"
        assert currency_name("SEK") == "SEK"


class TestSentiment:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Haussier", Sentiment.BULLISH),
            ("bearish", Sentiment.BEARISH),
            ("neutre", Sentiment.NEUTRAL),
            ("???", Sentiment.NEUTRAL),
            (None, Sentiment.NEUTRAL),
        ],
    )
    def test_parse(self, raw, expected):
        assert Sentiment.parse(raw) is expected

    def test_currency_codes_order(self, sample_summary):
        summary = sample_summary.model_copy(update={"mentioned_currencies": ["GBP", "USD"]})
        assert summary.currency_codes == ["USD", "EUR", "GBP"]

    def test_lowercase_codes_uppercased(self):
        summary = ArticleSummary(title="t", currencies={"usd": {"sentiment": "baissier"}})
        assert summary.currencies["USD"].sentiment is Sentiment.BEARISH


class TestExtractiveSummary:
    def test_candidate_sentence_length(self):
        short = "Too short."
        long_ok = "This sentence is comfortably longer than fifty characters in total."
        assert candidate_sentences(f"{short} {long_ok}") == [long_ok[:-1]]

    def test_summary_from_article(self, sample_article):
        summary = extractive_summary(sample_article)

        assert summary.is_fallback
        assert summary.introduction
        assert summary.key_takeaway == FALLBACK_TAKEAWAY
        assert summary.mentioned_currencies == ["USD", "EUR"]
        assert set(summary.currencies) == {"USD", "EUR"}
        assert all(s.sentiment is Sentiment.NEUTRAL for s in summary.currencies.values())

    def test_introduction_never_empty(self):
        summary = extractive_summary(
            ArticleContent(url="https://x.com/a", title="Le yen rebondit", content="")
        )
        assert summary.introduction == "Le yen rebondit"
        assert summary.currencies == {}


class TestCircuitBreaker:
    """Tests for CircuitBreaker."""

    @staticmethod
    async def _fail():
        raise RuntimeError("boom")

    @staticmethod
    async def _ok():
        return "ok"

    @pytest.mark.asyncio
    async def test_opens_after_threshold(self):
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60.0, clock=FakeClock())

        for _ in range(2):
            with pytest.raises(RuntimeError):
                await breaker.call(self._fail)

        assert breaker.state is CircuitState.OPEN
        with pytest.raises(CircuitOpenError):
            await breaker.call(self._ok)

    @pytest.mark.asyncio
    async def test_success_resets_failures(self):
        breaker = CircuitBreaker(failure_threshold=2, clock=FakeClock())

        with pytest.raises(RuntimeError):
            await breaker.call(self._fail)
        assert await breaker.call(self._ok) == "ok"

        assert breaker.failures == 0
        assert breaker.state is CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_probe_after_recovery_timeout(self):
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=60.0, clock=clock)
        with pytest.raises(RuntimeError):
            await breaker.call(self._fail)

        clock.now = 61.0
        assert await breaker.call(self._ok) == "ok"
        assert breaker.state is CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_failed_probe_reopens(self):
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=3, recovery_timeout=60.0, clock=clock)
        for _ in range(3):
            with pytest.raises(RuntimeError):
                await breaker.call(self._fail)

        clock.now = 61.0
        with pytest.raises(RuntimeError):
            await breaker.call(self._fail)

        assert breaker.state is CircuitState.OPEN
        with pytest.raises(CircuitOpenError):
            await breaker.call(self._ok)
