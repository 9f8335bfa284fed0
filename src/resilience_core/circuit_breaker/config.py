"""Breaker and per-call configuration."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class BreakerConfig:
    """Process-wide circuit breaker configuration.

    Attributes:
        failure_threshold: Consecutive failures that force a circuit ``OPEN``.
        reset_timeout: Seconds after the last failure before an ``OPEN``
            circuit is fully reset to ``CLOSED``.
        half_open_timeout: Seconds after the last failure before an ``OPEN``
            circuit lets a single probe through. Must be below
            ``reset_timeout``.
        success_threshold: Consecutive probe successes that close a circuit.
        max_retry_attempts: Upper bound callers apply to their own retries.
    """

    failure_threshold: int = 3
    reset_timeout: float = 60.0
    half_open_timeout: float = 5.0
    success_threshold: int = 2
    max_retry_attempts: int = 5

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.success_threshold < 1:
            raise ValueError("success_threshold must be >= 1")
        if self.max_retry_attempts < 1:
            raise ValueError("max_retry_attempts must be >= 1")
        if self.half_open_timeout < 0:
            raise ValueError("half_open_timeout must be >= 0")
        if self.half_open_timeout >= self.reset_timeout:
            raise ValueError("half_open_timeout must be < reset_timeout")


@dataclass(frozen=True, slots=True)
class ExecutionOptions(Generic[T]):
    """Optional per-call settings for ``BreakerExecutor.execute``.

    Attributes:
        timeout: Seconds the operation may run before it is cancelled and
            counted as a failure.
        fallback: Alternate zero-argument operation used when the circuit
            rejects the call or the operation fails.
        silent_errors: Suppress ``circuit.error`` notifications and warning
            logs for expected failures.
    """

    timeout: float | None = None
    fallback: Callable[[], Awaitable[T]] | None = None
    silent_errors: bool = False

    def __post_init__(self) -> None:
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0 when provided")
