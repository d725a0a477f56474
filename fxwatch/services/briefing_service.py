"""
Morning briefing service.

Builds a personalized synthesis of the last 24h of history plus today's
economic calendar for each user, and delivers it over Telegram.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import structlog

from fxwatch.config.settings import ConfigError, Settings, get_settings
from fxwatch.delivery.channels import DeliveryChannel, DeliveryError, OutboundMessage
from fxwatch.delivery.formatting import format_briefing_message
from fxwatch.economics.client import CalendarClient
from fxwatch.economics.schemas import EconomicEvent
from fxwatch.history.repository import HistoryRepository
from fxwatch.history.schemas import HistoryEntry
from fxwatch.ingestion.base_adapter import FetchError
from fxwatch.observability.logging import log_context
from fxwatch.observability.metrics import MetricsCollector, get_metrics
from fxwatch.subscriptions.repository import UserRepository
from fxwatch.subscriptions.schemas import User
from fxwatch.summarization.llm_client import LLMClient, SummarizeError
from fxwatch.summarization.prompts import (
    BRIEFING_PROMPT,
    INTERESTS_ALL,
    INTERESTS_TAGGED,
    NO_EVENTS,
    NO_NEWS,
)

logger = structlog.get_logger(__name__)

BRIEFING_WINDOW_HOURS = 24


@dataclass
class BriefingReport:
    """Per-user outcome of one briefing run."""

    sent: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


def user_interest_tags(user: User) -> list[str]:
    """Lowercased tags across all of a user's subscriptions, first-seen order."""
    seen: dict[str, None] = {}
    for sub in user.subscriptions:
        for tag in sub.tags:
            seen.setdefault(tag.lower(), None)
    return list(seen)


def relevant_events(events: list[EconomicEvent], tags: list[str]) -> list[EconomicEvent]:
    """Events whose currency matches a ``#CODE`` or ``CODE`` interest (all if no interests)."""
    if not tags:
        return list(events)
    wanted = set(tags)
    return [
        e for e in events
        if f"#{e.currency}".lower() in wanted or e.currency.lower() in wanted
    ]


def build_briefing_prompt(
    news: list[HistoryEntry],
    events: list[EconomicEvent],
    tags: list[str],
) -> str:
    news_text = "\n".join(
        f"- [{n.source}] {n.title} (Tags: {', '.join(n.tags)})" for n in news
    )
    calendar_text = "\n".join(
        f"- {e.currency} [{e.impact}] {e.time} : {e.title}" for e in events
    )
    interests = INTERESTS_TAGGED.format(tags=", ".join(tags)) if tags else INTERESTS_ALL
    return BRIEFING_PROMPT.format(
        interests=interests,
        news=news_text or NO_NEWS,
        calendar=calendar_text or NO_EVENTS,
    )


class BriefingService:
    """
    Generates and delivers the daily morning briefing.

    Usage:
        service = BriefingService(history, users, llm=llm, channel=telegram)
        text = await service.generate(user)
        report = await service.send_all()
    """

    def __init__(
        self,
        history: HistoryRepository,
        users: UserRepository,
        llm: LLMClient | None = None,
        calendar: CalendarClient | None = None,
        channel: DeliveryChannel | None = None,
        settings: Settings | None = None,
        metrics: MetricsCollector | None = None,
    ):
        self._history = history
        self._users = users
        self._llm = llm or LLMClient()
        self._calendar = calendar or CalendarClient()
        self._channel = channel
        self._settings = settings or get_settings()
        self._metrics = metrics or get_metrics()

    def _today(self, now: datetime | None = None) -> datetime:
        moment = now or datetime.now(timezone.utc)
        return moment.astimezone(ZoneInfo(self._settings.timezone))

    async def _todays_events(self, now: datetime | None = None) -> list[EconomicEvent]:
        try:
            return await self._calendar.fetch_events(self._today(now).date())
        except FetchError as e:
            logger.warning("Calendar unavailable for briefing", error=str(e))
            return []

    async def generate(
        self,
        user: User | None = None,
        now: datetime | None = None,
        events: list[EconomicEvent] | None = None,
    ) -> str:
        """
        Generate briefing text for ``user`` (market-wide when None).

        Raises:
            ConfigError: If no LLM key is configured.
            SummarizeError: If the completion fails.
        """
        if not self._llm.is_configured:
            raise ConfigError("No LLM API key configured; the morning briefing needs one")

        tags = user_interest_tags(user) if user else []
        news = self._history.recent(hours=BRIEFING_WINDOW_HOURS, now=now)
        if events is None:
            events = await self._todays_events(now)
        prompt = build_briefing_prompt(news, relevant_events(events, tags), tags)

        logger.info(
            "Generating briefing",
            user_id=user.id if user else None,
            articles=len(news),
            interests=tags,
        )
        return await self._llm.complete(prompt)

    async def send_all(self, now: datetime | None = None) -> BriefingReport:
        """
        Generate and send a briefing to every known user.

        Failures are isolated per user. The calendar is fetched once.

        Raises:
            ConfigError: If no delivery channel or LLM key is configured.
        """
        if self._channel is None:
            raise ConfigError("No delivery channel configured for the morning briefing")
        if not self._llm.is_configured:
            raise ConfigError("No LLM API key configured; the morning briefing needs one")

        report = BriefingReport()
        users = self._users.list_users()
        if not users:
            logger.info("No users registered, skipping briefing")
            return report

        events = await self._todays_events(now)
        header_time = self._today(now)

        for user in users:
            with log_context(user_id=user.id):
                try:
                    text = await self.generate(user, now=now, events=events)
                    message = OutboundMessage(text=format_briefing_message(text, header_time))
                    await self._channel.send(user.id, message)
                except (SummarizeError, DeliveryError) as e:
                    logger.warning("Briefing failed for user", error=str(e))
                    report.failed[user.id] = str(e)
                    self._metrics.record_delivery(self._channel.name, success=False)
                else:
                    report.sent.append(user.id)
                    self._metrics.record_delivery(self._channel.name, success=True)

        logger.info("Morning briefing sent", sent=len(report.sent), failed=len(report.failed))
        return report
