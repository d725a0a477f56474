"""
Processing pipeline - turns a newly seen item into a delivered summary.

Stages for one article:
1. Content (adapter snippet for general news, full-page extraction for FX dailies)
2. Summary (LLM, extractive fallback when it fails or has no key)
3. Calendar enrichment per summarized currency
4. Tags (#CODE per currency plus model tags)
5. History
6. Telegram fan-out to matching subscribers
7. Newsletter email and HTML preview file

Only content extraction can fail the pipeline; every later stage degrades
gracefully so the watcher records the article as seen.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from zoneinfo import ZoneInfo

import structlog

from fxwatch.config.settings import ConfigError, Settings, get_settings
from fxwatch.delivery.channels import DeliveryChannel, EmailChannel, OutboundMessage
from fxwatch.delivery.dispatcher import Dispatcher, DispatchReport
from fxwatch.delivery.formatting import (
    format_article_message,
    newsletter_subject,
    render_newsletter_html,
    render_newsletter_text,
)
from fxwatch.economics.client import CalendarClient
from fxwatch.history.repository import HistoryRepository
from fxwatch.history.schemas import HistoryEntry
from fxwatch.ingestion.extractor import ArticleExtractor
from fxwatch.ingestion.schemas import ArticleContent, LatestItem, SourceKind
from fxwatch.observability.metrics import MetricsCollector, get_metrics
from fxwatch.sources.schemas import Source
from fxwatch.subscriptions.repository import UserRepository
from fxwatch.subscriptions.schemas import merge_tags
from fxwatch.summarization.currencies import currency_tags
from fxwatch.summarization.fallback import extractive_summary
from fxwatch.summarization.llm_client import LLMClient, SummarizeError
from fxwatch.summarization.schemas import ArticleSummary

logger = structlog.get_logger(__name__)

NO_CONTENT = "No content available."


@dataclass
class PipelineResult:
    """Outcome of processing one article."""

    source_id: str
    article: ArticleContent
    summary: ArticleSummary
    history_entry: HistoryEntry | None = None
    recipients: set[str] = field(default_factory=set)
    telegram: DispatchReport | None = None
    newsletter: DispatchReport | None = None
    preview_path: Path | None = None

    @property
    def delivered_count(self) -> int:
        return len(self.telegram.delivered) if self.telegram else 0


class ArticlePipeline:
    """
    Processing pipeline for newly detected articles.

    Collaborators are injected so tests can replace the network-facing
    pieces (LLM, calendar, extractor, channels) with mocks.

    Usage:
        pipeline = ArticlePipeline(history=history, users=users, telegram=channel)
        result = await pipeline.process_and_send(source, item)
    """

    def __init__(
        self,
        history: HistoryRepository,
        users: UserRepository,
        llm: LLMClient | None = None,
        calendar: CalendarClient | None = None,
        extractor: ArticleExtractor | None = None,
        telegram: DeliveryChannel | None = None,
        email: EmailChannel | None = None,
        settings: Settings | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the pipeline.

        Args:
            history: Processed-article history
            users: Subscription store used for recipient resolution
            llm: Summarizer (or create from config)
            calendar: Economic calendar client (or create from config)
            extractor: Full-page extractor (or create default)
            telegram: Channel for subscriber messages (no fan-out if None)
            email: Newsletter channel (no newsletter if None)
            settings: Application settings (timezone, output directory)
            metrics: Metrics collector (or global)
        """
        self._settings = settings or get_settings()
        self._history = history
        self._users = users
        self._llm = llm or LLMClient()
        self._calendar = calendar or CalendarClient()
        self._extractor = extractor or ArticleExtractor()
        self._metrics = metrics or get_metrics()
        self._telegram = Dispatcher(telegram, self._metrics) if telegram else None
        self._email_channel = email
        self._email = Dispatcher(email, self._metrics) if email else None

    async def process_and_send(self, source: Source, item: LatestItem) -> PipelineResult:
        """
        Run the whole pipeline for one item.

        Raises:
            FetchError: If the full article cannot be extracted. Nothing is
                recorded or sent in that case.
        """
        log = logger.bind(source_id=source.id, url=item.url)
        log.info("Processing article", title=item.title)

        article = await self._load_content(source, item)
        summary = await self._summarize(article)
        await self._attach_events(summary, article)
        summary.tags = merge_tags(currency_tags(summary.currency_codes), summary.tags)

        result = PipelineResult(source_id=source.id, article=article, summary=summary)
        result.history_entry = self._history.add_article(article, summary, source.id, source.name)

        result.recipients = self._users.get_recipients(source.id, summary.tags)
        log.info("Resolved recipients", recipients=len(result.recipients), tags=summary.tags)
        if result.recipients and self._telegram:
            message = OutboundMessage(text=format_article_message(summary, article.url, source.name))
            result.telegram = await self._telegram.dispatch(result.recipients, message)
        elif not result.recipients:
            log.info("No subscribers for this content")

        result.newsletter = await self._send_newsletter(article, summary, source)
        result.preview_path = self._write_preview(article, summary, source)
        return result

    async def _load_content(self, source: Source, item: LatestItem) -> ArticleContent:
        if source.kind == SourceKind.GENERAL_NEWS:
            return ArticleContent(
                url=item.url,
                title=item.title,
                content=item.description or NO_CONTENT,
                site_name=source.name,
                published_time=item.published_time,
            )

        article = await self._extractor.extract(item.url)
        if article.published_time is None and item.published_time is not None:
            article = article.model_copy(update={"published_time": item.published_time})
        logger.info("Extracted article", url=item.url, words=article.word_count)
        return article

    async def _summarize(self, article: ArticleContent) -> ArticleSummary:
        try:
            summary = await self._llm.summarize_article(article)
        except (SummarizeError, ConfigError) as e:
            logger.warning("AI summary unavailable, using extractive fallback", error=str(e))
            summary = extractive_summary(article)
        self._metrics.record_summary(summary.is_fallback)
        return summary

    async def _attach_events(self, summary: ArticleSummary, article: ArticleContent) -> None:
        codes = list(summary.currencies)
        if not codes:
            return

        moment = article.published_time or datetime.now(timezone.utc)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        target_date = moment.astimezone(ZoneInfo(self._settings.timezone)).date()

        try:
            events = await self._calendar.events_for_currencies(codes, target_date)
        except Exception as e:
            logger.warning("Calendar enrichment skipped", error=str(e))
            return

        for code, code_events in events.items():
            if code in summary.currencies:
                summary.currencies[code].events = code_events

    async def _send_newsletter(
        self,
        article: ArticleContent,
        summary: ArticleSummary,
        source: Source,
    ) -> DispatchReport | None:
        if not self._email or not self._email_channel:
            return None
        addresses = self._email_channel.config.recipient_list
        if not addresses or not self._email_channel.is_configured:
            return None

        message = OutboundMessage(
            text=render_newsletter_text(summary, article.url),
            subject=newsletter_subject(summary),
            html=render_newsletter_html(summary, article.url, source.name, datetime.now(timezone.utc)),
            plain_text=render_newsletter_text(summary, article.url),
        )
        return await self._email.dispatch(addresses, message)

    def _write_preview(
        self,
        article: ArticleContent,
        summary: ArticleSummary,
        source: Source,
    ) -> Path | None:
        output_dir = self._settings.output_dir
        if output_dir is None:
            return None

        path = output_dir / f"newsletter_{source.id}_{time.time_ns() // 1_000_000}.html"
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            html = render_newsletter_html(summary, article.url, source.name, datetime.now(timezone.utc))
            path.write_text(html, encoding="utf-8")
        except OSError as e:
            logger.warning("Could not write newsletter preview", path=str(path), error=str(e))
            return None
        logger.debug("Newsletter preview written", path=str(path))
        return path
