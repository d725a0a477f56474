"""
Prometheus metrics for monitoring the watcher and its pipeline.

Defines and exposes metrics for:
- Source checks and their outcomes
- Fetch errors per source
- Summaries produced (AI vs extractive fallback)
- Message deliveries per channel
- Check cycle latency

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    start_http_server,
)

from fxwatch.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for cycle latency (seconds); one cycle awaits every source in turn
CYCLE_BUCKETS = (0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0)


class MetricsCollector:
    """
    Prometheus metrics collector for fx-news-watch.

    Each collector owns its registry so tests can build fresh instances
    without duplicate-timeseries errors.

    Usage:
        metrics = get_metrics()
        metrics.start_server()
        metrics.record_check("ing", "processed")
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()

        self.source_checks = Counter(
            "fxwatch_source_checks_total",
            "Source checks by outcome",
            ["source", "outcome"],  # outcome: processed, up_to_date, failed
            registry=self.registry,
        )

        self.fetch_errors = Counter(
            "fxwatch_fetch_errors_total",
            "Errors raised while checking a source",
            ["source", "error_type"],
            registry=self.registry,
        )

        self.summaries = Counter(
            "fxwatch_summaries_total",
            "Summaries produced by method",
            ["method"],  # method: ai, fallback
            registry=self.registry,
        )

        self.deliveries = Counter(
            "fxwatch_deliveries_total",
            "Message deliveries by channel and status",
            ["channel", "status"],  # status: success, failed
            registry=self.registry,
        )

        self.cycle_latency = Histogram(
            "fxwatch_check_cycle_seconds",
            "Time to check every registered source once",
            buckets=CYCLE_BUCKETS,
            registry=self.registry,
        )

    def start_server(self, port: int | None = None) -> None:
        """
        Start the Prometheus HTTP server.

        Args:
            port: Port to listen on (defaults to settings.metrics_port)
        """
        port = port or get_settings().metrics_port
        start_http_server(port, registry=self.registry)
        logger.info("Metrics server started on port %d", port)

    def record_check(self, source_id: str, outcome: str) -> None:
        self.source_checks.labels(source=source_id, outcome=outcome).inc()

    def record_fetch_error(self, source_id: str, error_type: str) -> None:
        self.fetch_errors.labels(source=source_id, error_type=error_type).inc()

    def record_summary(self, fallback: bool) -> None:
        self.summaries.labels(method="fallback" if fallback else "ai").inc()

    def record_delivery(self, channel: str, success: bool) -> None:
        status = "success" if success else "failed"
        self.deliveries.labels(channel=channel, status=status).inc()

    def record_cycle(self, latency: float) -> None:
        self.cycle_latency.observe(latency)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
