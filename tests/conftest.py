"""Pytest fixtures for fx-news-watch tests."""

from collections.abc import Callable
from datetime import datetime, timezone

import pytest

from fxwatch.config.settings import Settings
from fxwatch.history.repository import HistoryRepository
from fxwatch.ingestion.base_adapter import FetchError, SourceAdapter
from fxwatch.ingestion.schemas import ArticleContent, LatestItem, SourceKind
from fxwatch.observability.metrics import MetricsCollector
from fxwatch.sources.schemas import Source
from fxwatch.storage.json_store import JsonDocumentStore
from fxwatch.subscriptions.repository import UserRepository
from fxwatch.summarization.schemas import ArticleSummary, CurrencySection, Sentiment

ING_ARTICLE_TEXT = """\
The dollar has started the week on the back foot as markets reassess the Fed path.

USD: Dollar licks its wounds after payrolls
The dollar fell across the board after softer payrolls revived bets on a September cut by the Federal Reserve.
Our view remains that the USD should stay under pressure while two-year yields keep drifting lower.

EUR: Euro holds near the highs
EUR/USD is trading close to 1.10 and the ECB is in no hurry to validate further easing this summer.
A break above 1.1050 would open the way to 1.12 in our view, though positioning looks stretched already.
"""


class StaticAdapter(SourceAdapter):
    """Adapter returning queued items (or raising queued errors) without network access."""

    def __init__(self, *results: LatestItem | Exception):
        super().__init__("https://example.com/list")
        self.results = list(results)
        self.calls = 0

    async def _fetch(self, client):  # pragma: no cover - fetch_latest is overridden
        raise NotImplementedError

    async def fetch_latest(self) -> LatestItem:
        self.calls += 1
        result = self.results[min(self.calls, len(self.results)) - 1]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing every document at a temporary directory."""
    return Settings(
        environment="development",
        log_level="DEBUG",
        data_dir=tmp_path,
        output_dir=None,
        timezone="Europe/Paris",
    )


@pytest.fixture
def metrics() -> MetricsCollector:
    """Fresh collector with its own registry."""
    return MetricsCollector()


@pytest.fixture
def users(tmp_path) -> UserRepository:
    return UserRepository(JsonDocumentStore(tmp_path / "users.json", default=dict))


@pytest.fixture
def history(tmp_path) -> HistoryRepository:
    return HistoryRepository(JsonDocumentStore(tmp_path / "history.json", default=list))


@pytest.fixture
def sample_item() -> LatestItem:
    return LatestItem(
        url="https://think.ing.com/articles/fx-daily-dollar-licks-its-wounds/",
        title="FX Daily: Dollar licks its wounds",
        description="The dollar fell after payrolls.",
        published_time=datetime(2026, 10, 19, 6, 30, tzinfo=timezone.utc),
    )


@pytest.fixture
def sample_article() -> ArticleContent:
    return ArticleContent(
        url="https://think.ing.com/articles/fx-daily-dollar-licks-its-wounds/",
        title="FX Daily: Dollar licks its wounds",
        content=ING_ARTICLE_TEXT,
        site_name="ING Think",
        published_time=datetime(2026, 10, 19, 6, 30, tzinfo=timezone.utc),
    )


@pytest.fixture
def sample_summary() -> ArticleSummary:
    return ArticleSummary(
        title="Le dollar panse ses plaies",
        introduction="Le dollar recule après des chiffres de l'emploi décevants.",
        currencies={
            "USD": CurrencySection(
                sentiment=Sentiment.BEARISH,
                summary="Le billet vert reste sous pression.",
                factors=["Payrolls", "Fed"],
            ),
            "EUR": CurrencySection(
                sentiment=Sentiment.BULLISH,
                summary="L'euro se maintient près de 1,10.",
            ),
        },
        conclusion="Le biais reste baissier sur le dollar.",
        key_takeaway="Vendre le dollar sur rebond.",
        mentioned_currencies=["USD", "EUR"],
        tags=["#Fed"],
    )


@pytest.fixture
def make_source() -> Callable[..., Source]:
    """Build a Source around a StaticAdapter."""

    def _make(
        source_id: str = "ing",
        *results: LatestItem | Exception,
        kind: SourceKind = SourceKind.FX_DAILY,
        name: str | None = None,
    ) -> Source:
        return Source(
            id=source_id,
            name=name or source_id.upper(),
            kind=kind,
            adapter=StaticAdapter(*results),
        )

    return _make


@pytest.fixture
def fetch_error() -> FetchError:
    return FetchError("connection refused")
