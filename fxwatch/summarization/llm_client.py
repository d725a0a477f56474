"""LLM API abstraction for article summaries and free-text completions.

Talks to any OpenAI-compatible chat-completion endpoint (Groq by default)
through the ``openai`` SDK, with lazy SDK initialization, a circuit breaker
and response validation against the summary schema.

SDK imports are deferred to method calls (lazy loading) so the package
imports cleanly when no API key is configured.
"""

import json
import logging
from typing import Any

from fxwatch.config.settings import ConfigError
from fxwatch.ingestion.schemas import ArticleContent
from fxwatch.subscriptions.schemas import parse_tags
from fxwatch.summarization.circuit_breaker import CircuitBreaker, CircuitOpenError
from fxwatch.summarization.config import SummarizerConfig
from fxwatch.summarization.currencies import detect_currencies
from fxwatch.summarization.prompts import NO_CURRENCIES, SUMMARY_PROMPT, SYSTEM_PROMPT
from fxwatch.summarization.schemas import ArticleSummary, CurrencySection

logger = logging.getLogger(__name__)


class SummarizeError(Exception):
    """Raised when the LLM call fails or returns an unusable structure."""


class LLMClient:
    """Chat-completion client for summaries, briefings and answers.

    Features:
    - Lazy SDK initialization (import on first use)
    - Circuit breaker shared by every call
    - JSON mode plus schema validation for article summaries

    Args:
        config: Summarizer configuration with API key, endpoint and model.
        client: Pre-built SDK client (tests inject a mock here).
    """

    def __init__(self, config: SummarizerConfig | None = None, client: Any = None) -> None:
        self._config = config or SummarizerConfig()
        self._client: Any = client
        self._breaker = CircuitBreaker(
            failure_threshold=self._config.circuit_failure_threshold,
            recovery_timeout=self._config.circuit_recovery_timeout,
            name="llm",
        )

    @property
    def breaker(self) -> CircuitBreaker:
        """Access circuit breaker state."""
        return self._breaker

    @property
    def is_configured(self) -> bool:
        return self._client is not None or self._config.is_configured

    def _get_client(self) -> Any:
        """Lazy-initialize the async SDK client."""
        if self._client is None:
            if not self._config.is_configured:
                raise ConfigError(
                    "No LLM API key configured (set GROQ_API_KEY or SUMMARIZER_API_KEY)"
                )
            import openai

            self._client = openai.AsyncOpenAI(
                api_key=self._config.api_key.get_secret_value(),
                base_url=self._config.base_url,
                timeout=self._config.llm_timeout,
            )
        return self._client

    async def _chat(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        json_mode: bool,
    ) -> str:
        client = self._get_client()

        async def _call() -> str:
            kwargs: dict[str, Any] = {}
            if json_mode:
                kwargs["response_format"] = {"type": "json_object"}
            response = await client.chat.completions.create(
                model=self._config.model,
                messages=messages,
                temperature=temperature,
                **kwargs,
            )
            content = response.choices[0].message.content if response.choices else None
            if not content:
                raise SummarizeError("Empty response from LLM")
            return content

        try:
            return await self._breaker.call(_call)
        except CircuitOpenError as e:
            raise SummarizeError(str(e)) from e
        except SummarizeError:
            raise
        except Exception as e:
            raise SummarizeError(f"LLM request failed: {type(e).__name__}: {e}") from e

    async def summarize_article(self, article: ArticleContent) -> ArticleSummary:
        """Summarize an article into the structured French summary.

        Args:
            article: Extracted article text.

        Returns:
            Validated ArticleSummary with ``is_fallback=False``.

        Raises:
            ConfigError: If no API key is configured.
            SummarizeError: On request failure or malformed response.
        """
        mentioned = detect_currencies(article.content)
        logger.info("Currencies detected for analysis: %s", ", ".join(mentioned) or "none")

        prompt = SUMMARY_PROMPT.format(
            title=article.title,
            content=article.content[: self._config.max_content_chars],
            currencies=", ".join(mentioned) or NO_CURRENCIES,
        )
        raw = await self._chat(
            [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=self._config.temperature,
            json_mode=True,
        )
        summary = self._parse_summary_response(raw, article, mentioned)
        logger.info("Summary generated with %d currency sections", len(summary.currencies))
        return summary

    async def complete(self, prompt: str, temperature: float | None = None) -> str:
        """Free-text completion (briefings, answers).

        Raises:
            ConfigError: If no API key is configured.
            SummarizeError: On request failure.
        """
        return await self._chat(
            [{"role": "user", "content": prompt}],
            temperature=self._config.temperature if temperature is None else temperature,
            json_mode=False,
        )

    def _parse_summary_response(
        self,
        raw: str,
        article: ArticleContent,
        mentioned: list[str],
    ) -> ArticleSummary:
        """Parse raw JSON into an ArticleSummary.

        Raises:
            SummarizeError: On invalid JSON or a structure with no usable text.
        """
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SummarizeError(f"LLM response is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise SummarizeError("LLM response is not a JSON object")

        raw_currencies = data.get("currencies") or {}
        if not isinstance(raw_currencies, dict):
            raise SummarizeError("'currencies' must be an object")

        raw_tags = data.get("tags") or []
        if isinstance(raw_tags, str):
            raw_tags = [raw_tags]

        try:
            currencies = {
                str(code).upper(): CurrencySection.model_validate(section)
                for code, section in raw_currencies.items()
                if isinstance(section, dict)
            }
            summary = ArticleSummary(
                title=str(data.get("title") or article.title),
                introduction=str(data.get("introduction") or ""),
                currencies=currencies,
                conclusion=str(data.get("conclusion") or ""),
                key_takeaway=str(data.get("keyTakeaway") or ""),
                mentioned_currencies=mentioned,
                tags=parse_tags([str(t) for t in raw_tags]),
            )
        except (ValueError, TypeError) as e:
            raise SummarizeError(f"Failed to validate LLM summary: {e}") from e

        if not summary.introduction and not summary.currencies:
            raise SummarizeError("LLM summary has neither introduction nor currency sections")
        return summary

    async def close(self) -> None:
        """Clean up the SDK client."""
        if self._client is not None and hasattr(self._client, "close"):
            await self._client.close()
        self._client = None
