"""Source ingestion - HTTP transport, adapters, schemas and extraction."""

from fxwatch.ingestion.base_adapter import FetchError, NoMatchError, SourceAdapter
from fxwatch.ingestion.extractor import ArticleExtractor
from fxwatch.ingestion.http_client import HTTPClient, HTTPClientError, RetryConfig
from fxwatch.ingestion.rss_adapter import RSSFeedAdapter, title_contains
from fxwatch.ingestion.scrape_adapter import (
    CategorySlugLinkSelector,
    CssLinkSelector,
    KeywordLinkSelector,
    LinkSelector,
    PageScrapeAdapter,
)
from fxwatch.ingestion.schemas import ArticleContent, LatestItem, SourceKind

__all__ = [
    "ArticleContent",
    "ArticleExtractor",
    "CategorySlugLinkSelector",
    "CssLinkSelector",
    "FetchError",
    "HTTPClient",
    "HTTPClientError",
    "KeywordLinkSelector",
    "LatestItem",
    "LinkSelector",
    "NoMatchError",
    "PageScrapeAdapter",
    "RSSFeedAdapter",
    "RetryConfig",
    "SourceAdapter",
    "SourceKind",
    "title_contains",
]
