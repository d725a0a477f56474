"""Tests for full-page article extraction."""

from datetime import datetime, timezone

import httpx
import pytest
import respx

from fxwatch.ingestion.base_adapter import FetchError
from fxwatch.ingestion.extractor import ArticleExtractor, parse_metadata_date
from fxwatch.ingestion.http_client import HTTPClient, RetryConfig

ARTICLE_URL = "https://think.ing.com/articles/fx-daily-dollar-licks-its-wounds/"

ARTICLE_HTML = """
<html>
<head>
  <title>FX Daily: Dollar licks its wounds</title>
  <meta property="og:site_name" content="ING Think">
</head>
<body>
  <nav><a href="/">Home</a></nav>
  <article>
    <h1>FX Daily: Dollar licks its wounds</h1>
    <p>The dollar fell across the board after softer payrolls revived bets on a September cut by the Federal Reserve.</p>
    <p>Our view remains that the USD should stay under pressure while two-year yields keep drifting lower into the meeting.</p>
    <p>EUR/USD is trading close to 1.10 and the ECB is in no hurry to validate further easing this summer.</p>
  </article>
</body>
</html>
"""


def _extractor() -> ArticleExtractor:
    return ArticleExtractor(lambda: HTTPClient(retry_config=RetryConfig(max_retries=0)))


class TestArticleExtractor:
    """Tests for ArticleExtractor."""

    def test_parse_extracts_body_and_metadata(self):
        article = _extractor().parse(ARTICLE_HTML, ARTICLE_URL)

        assert article.url == ARTICLE_URL
        assert "Dollar licks its wounds" in article.title
        assert "softer payrolls" in article.content
        assert article.site_name == "ING Think"
        assert article.word_count > 20

    def test_parse_reads_publication_date(self):
        html = ARTICLE_HTML.replace(
            "</head>",
            '<meta property="article:published_time" content="2024-03-14T06:30:00+00:00">\n</head>',
        )

        article = _extractor().parse(html, ARTICLE_URL)

        assert article.published_time == datetime(2024, 3, 14, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2026-10-19", datetime(2026, 10, 19, tzinfo=timezone.utc)),
            ("2026-10-19T06:30:00", datetime(2026, 10, 19, tzinfo=timezone.utc)),
            ("19/10/2026", None),
            (None, None),
        ],
    )
    def test_parse_metadata_date(self, value, expected):
        assert parse_metadata_date(value) == expected

    def test_parse_without_title(self):
        article = _extractor().parse("<html><body><p>Some text.</p></body></html>", ARTICLE_URL)
        assert article.title

    @pytest.mark.asyncio
    @respx.mock
    async def test_extract_downloads_page(self):
        respx.get(ARTICLE_URL).mock(return_value=httpx.Response(200, text=ARTICLE_HTML))

        article = await _extractor().extract(ARTICLE_URL)

        assert "two-year yields" in article.content

    @pytest.mark.asyncio
    @respx.mock
    async def test_download_failure(self):
        respx.get(ARTICLE_URL).mock(return_value=httpx.Response(404))

        with pytest.raises(FetchError):
            await _extractor().extract(ARTICLE_URL)

    @pytest.mark.asyncio
    @respx.mock
    async def test_empty_page(self):
        respx.get(ARTICLE_URL).mock(return_value=httpx.Response(200, text="<html><body></body></html>"))

        with pytest.raises(FetchError, match="No readable content"):
            await _extractor().extract(ARTICLE_URL)
