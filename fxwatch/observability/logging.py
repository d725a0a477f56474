"""
Structured logging configuration using structlog.

Service orchestrators log through structlog with key/value fields; the
adapters, stores and channels use stdlib ``logging`` with %-style args.
Both end up in one handler rendered by structlog: JSON in production,
a coloured console in development.

Every check cycle, source, briefing recipient and bot update runs inside
``log_context`` so its lines carry ``cycle_id``, ``source_id`` or
``user_id`` even when emitted from a stdlib logger deep in the stack.
"""

import logging
import re
import sys
from contextlib import contextmanager
from typing import Any, Iterator

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from fxwatch.config.settings import get_settings

# Bot API URLs carry the token in the path
BOT_TOKEN_PATTERN = re.compile(r"/bot\d+:[A-Za-z0-9_-]+")

QUIET_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
    "openai": logging.WARNING,
    "trafilatura": logging.CRITICAL,
    "htmldate": logging.CRITICAL,
}


def redact_bot_token(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask Telegram bot tokens in every string value of the event."""
    for key, value in event_dict.items():
        if isinstance(value, str) and "/bot" in value:
            event_dict[key] = BOT_TOKEN_PATTERN.sub("/bot***", value)
    return event_dict


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        redact_bot_token,
    ]


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Configure structlog and route stdlib logging through it.

    Args:
        level: Overrides ``LOG_LEVEL`` (``--debug`` passes "DEBUG").
        json_output: Overrides the environment-based renderer choice.

    Usage:
        setup_logging()
        logger = structlog.get_logger(__name__)
        logger.info("Article processed", source_id="ing", recipients=3)
    """
    settings = get_settings()
    level = level or settings.log_level
    if json_output is None:
        json_output = settings.is_production

    shared = _shared_processors()
    if json_output:
        renderer: Processor = structlog.processors.JSONRenderer()
        shared.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level))

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


def bind_context(**kwargs: Any) -> None:
    """Bind fields to every later log line of the current task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """
    Bind fields for the duration of a block, restoring the previous values.

    Usage:
        with log_context(source_id=source.id):
            item = await source.adapter.fetch_latest()
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
