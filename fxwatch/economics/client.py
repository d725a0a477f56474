"""
Economic calendar client.

Downloads the ForexFactory weekly XML export and returns the releases of
one calendar day, keeping only the configured impact levels. The feed
lists dates as ``MM-DD-YYYY`` and times as ``1:30pm`` (or labels like
``All Day``).
"""

import logging
from datetime import date, datetime

from bs4 import BeautifulSoup, Tag

from fxwatch.economics.config import CalendarConfig
from fxwatch.economics.schemas import EconomicEvent
from fxwatch.ingestion.base_adapter import ClientFactory, FetchError
from fxwatch.ingestion.http_client import HTTPClient, HTTPClientError, RetryConfig

logger = logging.getLogger(__name__)

FEED_DATE_FORMAT = "%m-%d-%Y"


def _text(node: Tag, name: str) -> str:
    child = node.find(name)
    return child.get_text(strip=True) if child else ""


def parse_calendar(xml_text: str) -> list[EconomicEvent]:
    """Parse every event of the weekly export; malformed dates are skipped."""
    soup = BeautifulSoup(xml_text, "html.parser")
    events: list[EconomicEvent] = []

    for node in soup.find_all("event"):
        raw_date = _text(node, "date")
        try:
            event_date = datetime.strptime(raw_date, FEED_DATE_FORMAT).date()
        except ValueError:
            logger.debug("Skipping calendar event with bad date %r", raw_date)
            continue

        events.append(
            EconomicEvent(
                title=_text(node, "title"),
                currency=_text(node, "country").upper(),
                date=event_date,
                time=_text(node, "time"),
                impact=_text(node, "impact") or "Low",
                forecast=_text(node, "forecast"),
                previous=_text(node, "previous"),
            )
        )
    return events


class CalendarClient:
    """
    Client for the weekly economic calendar.

    Usage:
        client = CalendarClient()
        events = await client.events_for_currencies(["USD", "EUR"], date.today())
    """

    def __init__(
        self,
        config: CalendarConfig | None = None,
        client_factory: ClientFactory | None = None,
    ):
        self._config = config or CalendarConfig()
        self._client_factory = client_factory or self._default_client

    def _default_client(self) -> HTTPClient:
        return HTTPClient(
            retry_config=RetryConfig(max_retries=1),
            timeout=self._config.timeout_seconds,
        )

    async def fetch_events(self, target_date: date) -> list[EconomicEvent]:
        """
        Fetch the important releases scheduled on ``target_date``.

        Raises:
            FetchError: If the feed cannot be downloaded
        """
        try:
            async with self._client_factory() as client:
                response = await client.get(self._config.feed_url)
        except HTTPClientError as e:
            raise FetchError(f"Calendar feed unavailable: {e}") from e

        keep = set(self._config.impacts)
        events = [
            e
            for e in parse_calendar(response.text)
            if e.date == target_date and e.impact in keep
        ]
        logger.info("Found %d important events for %s", len(events), target_date.isoformat())
        return events

    async def events_for_currencies(
        self,
        currencies: list[str],
        target_date: date,
    ) -> dict[str, list[EconomicEvent]]:
        """Events of ``target_date`` grouped by currency; every requested code is a key."""
        by_currency: dict[str, list[EconomicEvent]] = {c: [] for c in currencies}
        for event in await self.fetch_events(target_date):
            if event.currency in by_currency:
                by_currency[event.currency].append(event)
        return by_currency
