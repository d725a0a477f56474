"""
RSS/Atom feed adapter.

Fetches a feed with the shared HTTP transport, parses it with feedparser
and returns the first entry accepted by an optional predicate. Feeds list
their newest entry first, so "first match" is "latest match".
"""

import calendar
import html
import logging
import re
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import feedparser
from bs4 import BeautifulSoup

from fxwatch.ingestion.base_adapter import (
    ClientFactory,
    FetchError,
    NoMatchError,
    SourceAdapter,
    clean_text,
)
from fxwatch.ingestion.http_client import HTTPClient
from fxwatch.ingestion.schemas import LatestItem

logger = logging.getLogger(__name__)

EntryPredicate = Callable[[dict[str, Any]], bool]


def title_contains(marker: str) -> EntryPredicate:
    """Build a predicate accepting entries whose title contains ``marker`` (any case)."""
    needle = marker.lower()

    def predicate(entry: dict[str, Any]) -> bool:
        return needle in (entry.get("title") or "").lower()

    return predicate


class RSSFeedAdapter(SourceAdapter):
    """
    Adapter for sources that publish an RSS or Atom feed.

    Content Handling:
        - Title and link come straight from the entry
        - Description falls back from summary to content, HTML stripped
        - Published time from published_parsed, else updated_parsed
    """

    def __init__(
        self,
        feed_url: str,
        predicate: EntryPredicate | None = None,
        client_factory: ClientFactory | None = None,
    ):
        """
        Initialize RSS adapter.

        Args:
            feed_url: Feed to poll
            predicate: Optional filter; the first entry it accepts wins
            client_factory: Builds the HTTP client for each fetch
        """
        super().__init__(feed_url, client_factory=client_factory)
        self._predicate = predicate

    async def _fetch(self, client: HTTPClient) -> LatestItem:
        response = await client.get(self.url)
        feed = feedparser.parse(response.text)

        entries = [e for e in feed.get("entries", []) if e.get("link")]
        if not entries:
            if feed.get("bozo"):
                raise FetchError(
                    f"{self.name}: could not parse feed {self.url}: "
                    f"{feed.get('bozo_exception')}"
                )
            raise NoMatchError("feed is empty")

        if self._predicate is not None:
            entries = [e for e in entries if self._predicate(e)]
            if not entries:
                raise NoMatchError("no item matched filter")

        return self._transform(entries[0])

    def _transform(self, entry: dict[str, Any]) -> LatestItem:
        """Transform a feed entry into a LatestItem."""
        title = clean_text(entry.get("title", "")) or entry["link"]

        return LatestItem(
            url=entry["link"],
            title=title,
            description=self._get_description(entry),
            published_time=self._parse_timestamp(entry),
        )

    def _get_description(self, entry: dict[str, Any]) -> str | None:
        """Description from summary, then content, HTML stripped."""
        raw = entry.get("summary") or ""
        if not raw and entry.get("content"):
            raw = entry["content"][0].get("value", "")

        text = self._clean_html_content(raw)
        return text or None

    def _parse_timestamp(self, entry: dict[str, Any]) -> datetime | None:
        """Parse timestamp from RSS entry."""
        for field in ["published_parsed", "updated_parsed"]:
            parsed = entry.get(field)
            if parsed:
                return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
        return None

    def _clean_html_content(self, html_content: str) -> str:
        """
        Extract clean text from HTML content.

        Args:
            html_content: Raw HTML string

        Returns:
            Clean text content
        """
        if not html_content:
            return ""

        soup = BeautifulSoup(html_content, "html.parser")
        for element in soup(["script", "style"]):
            element.decompose()

        text = html.unescape(soup.get_text(separator=" "))
        text = re.sub(r"\s+", " ", text)
        return clean_text(text)
