"""Observability layer - logging and metrics."""

from fxwatch.observability.logging import setup_logging
from fxwatch.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "MetricsCollector", "get_metrics"]
