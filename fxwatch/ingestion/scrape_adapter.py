"""
HTML page scrape adapter.

Fetches a listing page, parses it with BeautifulSoup and hands the document
to a LinkSelector strategy that picks one article link. Adding a scraped
source means writing (or configuring) a selector; the adapter, registry and
watcher stay untouched.
"""

import logging
import re
from abc import ABC, abstractmethod
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from fxwatch.ingestion.base_adapter import (
    ClientFactory,
    NoMatchError,
    SourceAdapter,
    clean_text,
    resolve_url,
)
from fxwatch.ingestion.http_client import HTTPClient
from fxwatch.ingestion.schemas import LatestItem

logger = logging.getLogger(__name__)

HEADINGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
MAX_SNIPPET_CHARS = 200


class LinkSelector(ABC):
    """Strategy that picks the latest article link from a parsed page."""

    @abstractmethod
    def select(self, soup: BeautifulSoup, base_url: str) -> LatestItem | None:
        """Return the chosen item, or None when no anchor qualifies."""
        ...


def is_web_url(url: str) -> bool:
    return url.startswith(("http://", "https://"))


def extract_title(anchor: Tag) -> str:
    """Title from a heading inside the anchor, else its first text line."""
    heading = anchor.find(HEADINGS)
    if heading is not None:
        return clean_text(heading.get_text(" "))

    for line in anchor.get_text("\n").splitlines():
        line = clean_text(line)
        if line:
            return line
    return ""


def extract_snippet(anchor: Tag) -> str | None:
    """Text after the anchor's first sentence, capped at 200 characters."""
    text = clean_text(anchor.get_text(" "))
    parts = SENTENCE_SPLIT.split(text)
    if len(parts) > 1:
        return " ".join(parts[1:])[:MAX_SNIPPET_CHARS]
    return None


class KeywordLinkSelector(LinkSelector):
    """
    First anchor matching a CSS pattern whose href or title carries a keyword.

    Used for listing pages mixing several article series where only one
    series is wanted (e.g. "FX Daily" among all FX research).
    """

    def __init__(
        self,
        anchor_selector: str,
        keywords: list[str],
        min_text_length: int = 10,
    ):
        self.anchor_selector = anchor_selector
        self.keywords = [k.lower() for k in keywords]
        self.min_text_length = min_text_length

    def select(self, soup: BeautifulSoup, base_url: str) -> LatestItem | None:
        for anchor in soup.select(self.anchor_selector):
            href = anchor.get("href")
            text = clean_text(anchor.get_text(" "))
            if not href or len(text) < self.min_text_length:
                continue

            url = resolve_url(href, base_url)
            if not is_web_url(url):
                continue

            title = extract_title(anchor)
            haystacks = (href.lower(), title.lower())
            if any(k in h for k in self.keywords for h in haystacks):
                return LatestItem(
                    url=url,
                    title=title,
                    description=extract_snippet(anchor),
                )
        return None


class CategorySlugLinkSelector(LinkSelector):
    """
    First anchor pointing into a category path with an article-length slug.

    Category index links (``/forex/``) have short slugs; article links carry
    the headline in the slug and a headline as anchor text.
    """

    def __init__(
        self,
        categories: list[str],
        min_slug_length: int = 15,
        min_text_length: int = 20,
    ):
        self.categories = categories
        self.min_slug_length = min_slug_length
        self.min_text_length = min_text_length

    def select(self, soup: BeautifulSoup, base_url: str) -> LatestItem | None:
        for anchor in soup.find_all("a", href=True):
            url = resolve_url(anchor["href"], base_url)
            text = clean_text(anchor.get_text(" "))

            if not is_web_url(url) or not any(category in url for category in self.categories):
                continue

            segments = [s for s in urlparse(url).path.split("/") if s]
            slug = segments[-1] if segments else ""
            if len(slug) > self.min_slug_length and len(text) > self.min_text_length:
                return LatestItem(url=url, title=text)
        return None


class CssLinkSelector(LinkSelector):
    """First anchor matching a CSS selector, title from an optional child selector."""

    def __init__(self, selector: str, title_selector: str | None = None):
        self.selector = selector
        self.title_selector = title_selector

    def select(self, soup: BeautifulSoup, base_url: str) -> LatestItem | None:
        for anchor in soup.select(self.selector):
            href = anchor.get("href")
            if not href:
                continue

            url = resolve_url(href, base_url)
            if not is_web_url(url):
                continue

            title_node = anchor.select_one(self.title_selector) if self.title_selector else None
            title = clean_text((title_node or anchor).get_text(" "))
            if not title:
                continue

            return LatestItem(url=url, title=title)
        return None


class PageScrapeAdapter(SourceAdapter):
    """
    Adapter for sources that only publish an HTML listing page.

    The first qualifying link on the page is taken as the most recent article.
    """

    def __init__(
        self,
        page_url: str,
        selector: LinkSelector,
        client_factory: ClientFactory | None = None,
    ):
        """
        Initialize scrape adapter.

        Args:
            page_url: Listing page to scrape
            selector: Strategy picking the article link
            client_factory: Builds the HTTP client for each fetch
        """
        super().__init__(page_url, client_factory=client_factory)
        self.selector = selector

    async def _fetch(self, client: HTTPClient) -> LatestItem:
        response = await client.get(self.url)
        soup = BeautifulSoup(response.text, "html.parser")

        item = self.selector.select(soup, str(response.url) or self.url)
        if item is None:
            raise NoMatchError(
                f"{self.name}: no article link matched on {self.url} "
                f"({type(self.selector).__name__})"
            )
        return item
