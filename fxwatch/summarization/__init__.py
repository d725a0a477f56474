"""Article summarization - LLM client, extractive fallback and currency heuristics."""

from fxwatch.summarization.circuit_breaker import CircuitBreaker, CircuitOpenError, CircuitState
from fxwatch.summarization.config import SummarizerConfig
from fxwatch.summarization.currencies import (
    CURRENCY_NAMES,
    TRACKED_CURRENCIES,
    currency_tags,
    detect_currencies,
)
from fxwatch.summarization.fallback import extractive_summary
from fxwatch.summarization.llm_client import LLMClient, SummarizeError
from fxwatch.summarization.schemas import ArticleSummary, CurrencySection, Sentiment

__all__ = [
    "ArticleSummary",
    "CURRENCY_NAMES",
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "CurrencySection",
    "LLMClient",
    "Sentiment",
    "SummarizeError",
    "SummarizerConfig",
    "TRACKED_CURRENCIES",
    "currency_tags",
    "detect_currencies",
    "extractive_summary",
]
