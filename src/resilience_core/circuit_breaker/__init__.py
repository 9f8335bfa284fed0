"""Keyed async circuit breaker with bulkhead isolation.

One ``BreakerExecutor`` guards any number of operation keys. Each key owns an
independent circuit, so a failing dependency never blocks or trips another.

Key behavior notes:
  - An ``OPEN`` circuit lets a probe through once ``half_open_timeout`` has
    passed since the last failure, and fully resets without probing once
    ``reset_timeout`` has passed.
  - While ``HALF_OPEN`` calls are admitted; ``success_threshold`` consecutive
    successes close the circuit and any failure reopens it.
  - Isolated successes while ``CLOSED`` discount the failure streak by one
    instead of clearing it.
  - Resets never touch lifetime totals, which feed the health score.
  - Task cancellation is not counted as an operation failure.
"""

from resilience_core.circuit_breaker.breaker import BreakerExecutor
from resilience_core.circuit_breaker.config import BreakerConfig, ExecutionOptions
from resilience_core.circuit_breaker.events import (
    CircuitEvent,
    CircuitEventType,
    CircuitNotifier,
    LoggingNotifier,
)
from resilience_core.circuit_breaker.exceptions import (
    CircuitBreakerError,
    CircuitOpenError,
    FallbackError,
    OperationTimeoutError,
)
from resilience_core.circuit_breaker.registry import BreakerRegistry
from resilience_core.circuit_breaker.state import CircuitState, CircuitStatus
from resilience_core.circuit_breaker.stats import (
    CircuitSnapshot,
    CircuitStats,
    health_score,
)

__all__ = [
    "BreakerConfig",
    "BreakerExecutor",
    "BreakerRegistry",
    "CircuitBreakerError",
    "CircuitEvent",
    "CircuitEventType",
    "CircuitNotifier",
    "CircuitOpenError",
    "CircuitSnapshot",
    "CircuitState",
    "CircuitStats",
    "CircuitStatus",
    "ExecutionOptions",
    "FallbackError",
    "LoggingNotifier",
    "OperationTimeoutError",
    "health_score",
]
