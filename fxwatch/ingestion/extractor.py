"""
Full-page article extraction.

Downloads an article page with the shared HTTP transport and extracts the
readable body with trafilatura. When trafilatura finds no main content the
page paragraphs are joined instead.
"""

import logging
from datetime import datetime, timezone
from urllib.parse import urlparse

import trafilatura
from bs4 import BeautifulSoup

from fxwatch.ingestion.base_adapter import ClientFactory, FetchError, clean_text
from fxwatch.ingestion.http_client import HTTPClient, HTTPClientError
from fxwatch.ingestion.schemas import ArticleContent

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"


def parse_metadata_date(value: str | None) -> datetime | None:
    """trafilatura reports dates as ``YYYY-MM-DD``; anything else is ignored."""
    if not value:
        return None
    try:
        return datetime.strptime(value[:10], "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except ValueError:
        logger.debug("Ignoring unparseable article date %r", value)
        return None


class ArticleExtractor:
    """
    Extracts title, body text and site name from an article URL.

    Usage:
        extractor = ArticleExtractor()
        article = await extractor.extract("https://think.ing.com/articles/fx-daily-...")
    """

    def __init__(self, client_factory: ClientFactory | None = None):
        self._client_factory = client_factory or HTTPClient.from_settings

    async def extract(self, url: str) -> ArticleContent:
        """
        Fetch and extract an article.

        Raises:
            FetchError: If the page cannot be downloaded or holds no text
        """
        try:
            async with self._client_factory() as client:
                response = await client.get(url)
        except HTTPClientError as e:
            raise FetchError(f"Could not download article {url}: {e}") from e

        article = self.parse(response.text, url)
        if not article.content:
            raise FetchError(f"No readable content found at {url}")

        logger.info("Extracted %r (%d words)", article.title, article.word_count)
        return article

    def parse(self, html_text: str, url: str) -> ArticleContent:
        """Extract an article from already-downloaded HTML."""
        content = trafilatura.extract(
            html_text,
            url=url,
            include_comments=False,
            include_tables=False,
        ) or ""

        metadata = trafilatura.extract_metadata(html_text, default_url=url)
        soup = BeautifulSoup(html_text, "html.parser")

        if not content:
            paragraphs = [p.get_text(" ", strip=True) for p in soup.find_all("p")]
            content = "\n".join(p for p in paragraphs if p)

        title = (metadata.title if metadata else None) or self._soup_title(soup) or UNTITLED
        site_name = (metadata.sitename if metadata else None) or urlparse(url).hostname

        return ArticleContent(
            url=url,
            title=clean_text(title),
            content=content.strip(),
            site_name=site_name,
            published_time=parse_metadata_date(metadata.date if metadata else None),
        )

    def _soup_title(self, soup: BeautifulSoup) -> str:
        if soup.title:
            return soup.title.get_text(strip=True)
        og_title = soup.find("meta", property="og:title")
        if og_title:
            return og_title.get("content", "")
        return ""
