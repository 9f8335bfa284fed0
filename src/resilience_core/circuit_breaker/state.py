"""Circuit state primitives."""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class CircuitStatus(StrEnum):
    """Circuit status values."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(slots=True, eq=False)
class CircuitState:
    """Mutable per-key circuit record owned by a ``BreakerRegistry``.

    Attributes:
        key: Operation key protected by this circuit.
        status: Current circuit status.
        consecutive_failures: Failures since the last reset, discounted by one
            on each isolated success while ``CLOSED``.
        consecutive_successes: Successes since the last failure or since
            entering ``HALF_OPEN``.
        last_failure_at: Timestamp of the most recent failure, if any.
        half_open_probe_count: Probe calls let through while ``HALF_OPEN``.
        total_failures: Lifetime failure count, preserved by resets.
        total_successes: Lifetime success count, preserved by resets.
        last_reset_at: Timestamp of the last full reset or creation.
        lock: Mutex guarding every field above.
    """

    key: str
    last_reset_at: datetime
    status: CircuitStatus = CircuitStatus.CLOSED
    consecutive_failures: int = 0
    consecutive_successes: int = 0
    last_failure_at: datetime | None = None
    half_open_probe_count: int = 0
    total_failures: int = 0
    total_successes: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def operation_count(self) -> int:
        return self.total_successes + self.total_failures
