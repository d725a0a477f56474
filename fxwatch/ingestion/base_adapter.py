"""
Base adapter interface and shared functionality for source adapters.

Every news source exposes one capability: fetch the most recent item it
currently lists. The base class provides:
- Error translation (transport failures become FetchError)
- Logging of each fetch
- Common text utilities shared by the RSS and scrape variants
"""

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Callable
from urllib.parse import urljoin

from fxwatch.ingestion.http_client import HTTPClient, HTTPClientError
from fxwatch.ingestion.schemas import LatestItem

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when a source cannot be fetched or its payload cannot be parsed."""


class NoMatchError(FetchError):
    """Raised when the selection heuristic finds no candidate item."""


ClientFactory = Callable[[], HTTPClient]


class SourceAdapter(ABC):
    """
    Abstract base class for source adapters.

    Subclasses must implement:
        - _fetch(client): return the LatestItem using the provided client

    The base class handles:
        - HTTP client lifecycle (one client per fetch)
        - Translating transport errors into FetchError
        - Logging
    """

    def __init__(self, url: str, client_factory: ClientFactory | None = None):
        """
        Initialize adapter.

        Args:
            url: Page or feed URL this adapter reads
            client_factory: Builds the HTTP client for each fetch
        """
        self.url = url
        self._client_factory = client_factory or HTTPClient.from_settings

    @property
    def name(self) -> str:
        """Human-readable adapter name."""
        return type(self).__name__

    @abstractmethod
    async def _fetch(self, client: HTTPClient) -> LatestItem:
        """
        Fetch and select the latest item.

        Raises:
            NoMatchError: If nothing on the page/feed qualifies
            FetchError: If the payload cannot be parsed
        """
        ...

    async def fetch_latest(self) -> LatestItem:
        """
        Fetch the most recent item from the source.

        This is the main entry point called by the watcher. Errors propagate;
        the caller decides whether a failure aborts anything.

        Raises:
            FetchError: On network, timeout or parse failure
            NoMatchError: When the heuristic finds nothing
        """
        logger.debug("%s fetching %s", self.name, self.url)
        try:
            async with self._client_factory() as client:
                item = await self._fetch(client)
        except FetchError:
            raise
        except HTTPClientError as e:
            raise FetchError(f"{self.name}: request to {self.url} failed: {e}") from e
        except (ValueError, TypeError) as e:
            raise FetchError(f"{self.name}: could not parse {self.url}: {e}") from e

        logger.info("%s found %r", self.name, item.title)
        return item


# Common text utilities used across adapters

def clean_text(text: str) -> str:
    """
    Clean text content by removing excessive whitespace and control characters.

    Args:
        text: Raw text content

    Returns:
        Cleaned text
    """
    text = " ".join(text.split())
    text = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", text)
    return text.strip()


def resolve_url(href: str, base_url: str) -> str:
    """Resolve a possibly relative href against the page it was found on."""
    return urljoin(base_url, href.strip())
