"""Caller-side retrying for calls rejected by an open circuit.

The executor never retries on its own. Callers that prefer waiting for a
probe window over failing fast can wrap ``execute`` in the retrying built
here, which is bounded by ``BreakerConfig.max_retry_attempts``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from resilience_core.circuit_breaker import BreakerConfig, CircuitOpenError


@dataclass(frozen=True)
class RetryBackoffPolicy:
    """Configuration for retry attempt count and backoff boundaries."""

    attempts: int
    min_seconds: float
    max_seconds: float

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")
        if self.min_seconds < 0:
            raise ValueError("min_seconds must be >= 0")
        if self.max_seconds < 0:
            raise ValueError("max_seconds must be >= 0")
        if self.max_seconds < self.min_seconds:
            raise ValueError("max_seconds must be >= min_seconds")

    @classmethod
    def from_breaker_config(cls, config: BreakerConfig) -> RetryBackoffPolicy:
        """Wait at least one probe window, at most one full reset window."""
        return cls(
            attempts=config.max_retry_attempts,
            min_seconds=config.half_open_timeout,
            max_seconds=config.reset_timeout,
        )


def build_open_circuit_retrying(
    *,
    policy: RetryBackoffPolicy,
    sleep: Callable[[float], Awaitable[None]] | None = None,
    before_sleep: Callable[[RetryCallState], None] | None = None,
) -> AsyncRetrying:
    """Build an ``AsyncRetrying`` that only retries ``CircuitOpenError``.

    Operation failures propagate on the first attempt. Once ``policy.attempts``
    is exhausted the last ``CircuitOpenError`` is re-raised.
    """
    options: dict[str, Any] = {
        "retry": retry_if_exception_type(CircuitOpenError),
        "wait": wait_exponential_jitter(
            initial=policy.min_seconds,
            max=policy.max_seconds,
        ),
        "stop": stop_after_attempt(policy.attempts),
        "reraise": True,
    }
    if sleep is not None:
        options["sleep"] = sleep
    if before_sleep is not None:
        options["before_sleep"] = before_sleep
    return AsyncRetrying(**options)
