"""Circuit breaker guarding calls to the LLM endpoint.

After ``failure_threshold`` consecutive failures the breaker opens and
calls fail fast with CircuitOpenError until ``recovery_timeout`` seconds
have passed. The next call is then let through as a probe: success closes
the breaker, failure re-opens it.

Usage:
    breaker = CircuitBreaker(failure_threshold=3, recovery_timeout=300.0, name="llm")
    try:
        summary = await breaker.call(client.summarize_article, article)
    except CircuitOpenError:
        summary = extractive_summary(article)
"""

import enum
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(enum.Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """Raised instead of calling through an open breaker."""


class CircuitBreaker:
    """Consecutive-failure breaker for one downstream dependency."""

    def __init__(
        self,
        failure_threshold: int = 3,
        recovery_timeout: float = 300.0,
        name: str = "circuit",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.name = name
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._opened_at = 0.0

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failures(self) -> int:
        return self._failures

    def _transition(self, new_state: CircuitState, reason: str) -> None:
        if new_state is not self._state:
            logger.info(
                "Circuit %s: %s -> %s (%s)",
                self.name,
                self._state.value,
                new_state.value,
                reason,
            )
            self._state = new_state

    def _before_call(self) -> None:
        if self._state is not CircuitState.OPEN:
            return
        if self._clock() - self._opened_at < self.recovery_timeout:
            raise CircuitOpenError(f"Circuit {self.name} is open")
        self._transition(CircuitState.HALF_OPEN, "recovery probe")

    def record_success(self) -> None:
        self._failures = 0
        self._transition(CircuitState.CLOSED, "call succeeded")

    def record_failure(self) -> None:
        self._failures += 1
        probe_failed = self._state is CircuitState.HALF_OPEN
        if probe_failed or self._failures >= self.failure_threshold:
            self._opened_at = self._clock()
            reason = "probe failed" if probe_failed else f"{self._failures} consecutive failures"
            self._transition(CircuitState.OPEN, reason)

    def reset(self) -> None:
        self._failures = 0
        self._transition(CircuitState.CLOSED, "reset")

    async def call(
        self,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Run ``fn`` through the breaker.

        Raises:
            CircuitOpenError: If the breaker is open and not yet due a probe.
        """
        self._before_call()
        try:
            result = await fn(*args, **kwargs)
        except Exception:
            self.record_failure()
            raise
        self.record_success()
        return result
