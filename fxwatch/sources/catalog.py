"""Default source catalog loaded from the bundled JSON seed."""

import json
import logging
from pathlib import Path
from typing import Any

from fxwatch.config.settings import Settings, get_settings
from fxwatch.ingestion.base_adapter import ClientFactory, SourceAdapter
from fxwatch.ingestion.http_client import HTTPClient
from fxwatch.ingestion.rss_adapter import RSSFeedAdapter, title_contains
from fxwatch.ingestion.scrape_adapter import (
    CategorySlugLinkSelector,
    CssLinkSelector,
    KeywordLinkSelector,
    LinkSelector,
    PageScrapeAdapter,
)
from fxwatch.ingestion.schemas import SourceKind
from fxwatch.sources.registry import SourceRegistry
from fxwatch.sources.schemas import Source

logger = logging.getLogger(__name__)

_SEED_FILE = Path(__file__).parent / "data" / "default_sources.json"

_SELECTORS: dict[str, type[LinkSelector]] = {
    "keyword": KeywordLinkSelector,
    "category_slug": CategorySlugLinkSelector,
    "css": CssLinkSelector,
}


def _build_selector(spec: dict[str, Any]) -> LinkSelector:
    params = dict(spec)
    selector_type = params.pop("type")
    try:
        selector_cls = _SELECTORS[selector_type]
    except KeyError:
        raise ValueError(f"Unknown link selector type: {selector_type}") from None
    return selector_cls(**params)


def _build_adapter(spec: dict[str, Any], client_factory: ClientFactory) -> SourceAdapter:
    adapter_type = spec["type"]
    if adapter_type == "rss":
        marker = spec.get("title_contains")
        return RSSFeedAdapter(
            spec["url"],
            predicate=title_contains(marker) if marker else None,
            client_factory=client_factory,
        )
    if adapter_type == "scrape":
        return PageScrapeAdapter(
            spec["url"],
            selector=_build_selector(spec["selector"]),
            client_factory=client_factory,
        )
    raise ValueError(f"Unknown adapter type: {adapter_type}")


def _parse_seed_entry(entry: dict[str, Any], client_factory: ClientFactory) -> Source:
    """Convert a JSON seed entry to a Source."""
    return Source(
        id=entry["id"],
        name=entry.get("name", entry["id"]),
        kind=SourceKind(entry.get("kind", SourceKind.GENERAL_NEWS.value)),
        adapter=_build_adapter(entry["adapter"], client_factory),
    )


def load_seed_entries(path: Path | None = None) -> list[dict[str, Any]]:
    with open(path or _SEED_FILE, encoding="utf-8") as f:
        return json.load(f)


def build_default_registry(
    settings: Settings | None = None,
    include_disabled: bool = False,
    seed_file: Path | None = None,
) -> SourceRegistry:
    """
    Build the registry of shipped sources.

    Entries marked ``"enabled": false`` overlap an enabled source (same
    articles, different access path) and are only registered on request.
    """
    settings = settings or get_settings()

    def client_factory() -> HTTPClient:
        return HTTPClient.from_settings(settings)

    registry = SourceRegistry()
    for entry in load_seed_entries(seed_file):
        if not entry.get("enabled", True) and not include_disabled:
            continue
        registry.register(_parse_seed_entry(entry, client_factory))

    logger.info("Loaded %d sources: %s", len(registry), ", ".join(registry.ids))
    return registry
