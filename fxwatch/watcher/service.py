"""
Watcher service - polls every registered source and processes new articles.

A source has new content when its adapter reports a URL different from
the last one processed (or when a check is forced). Sources are checked
one after the other; a failure on one source is logged and counted and
never aborts the cycle.

Features:
- Immediate check at start, then one every interval
- Daily morning briefing at a fixed wall-clock time
- Graceful shutdown
- Metrics collection
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import structlog

from fxwatch.config.settings import ConfigError, Settings, get_settings
from fxwatch.ingestion.base_adapter import NoMatchError
from fxwatch.observability.logging import bind_context, clear_context, log_context
from fxwatch.observability.metrics import MetricsCollector, get_metrics
from fxwatch.services.briefing_service import BriefingService
from fxwatch.services.processing_service import ArticlePipeline
from fxwatch.sources.registry import SourceRegistry
from fxwatch.sources.schemas import Source
from fxwatch.watcher.config import WatcherConfig
from fxwatch.watcher.state import WatcherStateRepository

logger = structlog.get_logger(__name__)


@dataclass
class CheckReport:
    """Outcome of one check cycle, per source id."""

    processed: list[str] = field(default_factory=list)
    up_to_date: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def has_new_content(self) -> bool:
        return bool(self.processed)


def next_briefing_at(now: datetime, hour: int, minute: int, tz: ZoneInfo) -> datetime:
    """Next occurrence of ``hour:minute`` in ``tz`` strictly after ``now``."""
    local_now = now.astimezone(tz)
    target = local_now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= local_now:
        target = (target + timedelta(days=1)).replace(hour=hour, minute=minute)
    return target


class WatcherService:
    """
    Service that watches all registered sources.

    Usage:
        watcher = WatcherService(registry, pipeline, state)
        report = await watcher.check()
        await watcher.run()  # Runs until stop()
    """

    def __init__(
        self,
        registry: SourceRegistry,
        pipeline: ArticlePipeline,
        state: WatcherStateRepository,
        briefing: BriefingService | None = None,
        config: WatcherConfig | None = None,
        settings: Settings | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the watcher.

        Args:
            registry: Sources to poll, in check order
            pipeline: Processing pipeline for new articles
            state: Last processed URL per source
            briefing: Morning briefing service (no briefing loop if None)
            config: Interval and briefing schedule (or create from env)
            settings: Application settings (timezone)
            metrics: Metrics collector (or global)
        """
        self._registry = registry
        self._pipeline = pipeline
        self._state = state
        self._briefing = briefing
        self._config = config or WatcherConfig()
        self._settings = settings or get_settings()
        self._metrics = metrics or get_metrics()
        self._running = False
        self._tasks: list[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return self._running

    async def check(self, force: bool = False) -> CheckReport:
        """
        Check every registered source once, in registration order.

        Args:
            force: Process the latest item even if it was already seen.

        Returns:
            CheckReport with processed, up-to-date and failed source ids.
        """
        report = CheckReport()
        start_time = time.monotonic()
        bind_context(cycle_id=uuid.uuid4().hex[:8])
        logger.info("Checking for new articles", sources=len(self._registry), force=force)

        try:
            for source in self._registry:
                with log_context(source_id=source.id):
                    await self._check_source(source, force, report)
        finally:
            elapsed = time.monotonic() - start_time
            self._metrics.record_cycle(elapsed)
            logger.info(
                "Check cycle completed",
                processed=len(report.processed),
                up_to_date=len(report.up_to_date),
                failed=len(report.failed),
                elapsed_seconds=round(elapsed, 2),
            )
            clear_context()

        return report

    async def _check_source(self, source: Source, force: bool, report: CheckReport) -> None:
        try:
            item = await source.adapter.fetch_latest()

            if not force and item.url == self._state.last_url(source.id):
                logger.info("Source up to date")
                report.up_to_date.append(source.id)
                self._metrics.record_check(source.id, "up_to_date")
                return

            logger.info("New content", title=item.title, url=item.url)
            await self._pipeline.process_and_send(source, item)
            self._state.mark_processed(source.id, item.url)
            report.processed.append(source.id)
            self._metrics.record_check(source.id, "processed")

        except asyncio.CancelledError:
            raise
        except NoMatchError as e:
            logger.warning("No article found", error=str(e))
            self._record_failure(source.id, e, report)
        except Exception as e:
            logger.error("Source check failed", error=str(e), error_type=type(e).__name__)
            self._record_failure(source.id, e, report)

    def _record_failure(self, source_id: str, error: Exception, report: CheckReport) -> None:
        report.failed[source_id] = str(error)
        self._metrics.record_check(source_id, "failed")
        self._metrics.record_fetch_error(source_id, type(error).__name__)

    async def run(self, interval_minutes: int | None = None) -> None:
        """
        Run the poll loop (and the briefing loop when enabled) until stop().

        Never exits on transient errors.
        """
        interval = interval_minutes or self._config.interval_minutes
        self._running = True
        logger.info(
            "Watcher started",
            interval_minutes=interval,
            briefing=self._briefing is not None and self._config.briefing_enabled,
            briefing_time=self._config.briefing_time,
        )

        self._tasks = [asyncio.create_task(self._poll_loop(interval), name="watcher_poll")]
        if self._briefing is not None and self._config.briefing_enabled:
            self._tasks.append(asyncio.create_task(self._briefing_loop(), name="watcher_briefing"))

        try:
            await asyncio.gather(*self._tasks)
        except asyncio.CancelledError:
            logger.info("Watcher cancelled")
        finally:
            self._running = False
            self._tasks.clear()

    async def stop(self) -> None:
        """Stop both loops."""
        logger.info("Stopping watcher")
        self._running = False
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _poll_loop(self, interval_minutes: int) -> None:
        while self._running:
            try:
                await self.check()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Check cycle error", error=str(e))

            logger.info("Next check scheduled", in_minutes=interval_minutes)
            await asyncio.sleep(interval_minutes * 60)

    async def _briefing_loop(self) -> None:
        tz = ZoneInfo(self._settings.timezone)
        hour, minute = self._config.briefing_hour_minute

        while self._running:
            now = datetime.now(timezone.utc)
            target = next_briefing_at(now, hour, minute, tz)
            delay = (target - now).total_seconds()
            logger.info("Next morning briefing scheduled", at=target.isoformat())
            await asyncio.sleep(delay)

            try:
                await self._briefing.send_all()
            except asyncio.CancelledError:
                break
            except ConfigError as e:
                logger.warning("Morning briefing disabled", error=str(e))
                break
            except Exception as e:
                logger.error("Morning briefing error", error=str(e))
