"""Read-only circuit snapshots for monitoring and dashboards."""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from resilience_core.circuit_breaker.policy import seconds_since_failure
from resilience_core.circuit_breaker.state import CircuitState, CircuitStatus


def health_score(successes: int, failures: int) -> int:
    """Return the lifetime success ratio as an integer percentage.

    Circuits with no recorded operations score 100. Exact halves round up.
    """
    total = successes + failures
    if total <= 0:
        return 100
    ratio = Decimal(100 * successes) / Decimal(total)
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class CircuitSnapshot:
    """Point-in-time view of one circuit.

    Attributes:
        key: Operation key.
        status: Circuit status.
        consecutive_failures: Current failure streak (discounted by successes).
        consecutive_successes: Current success streak.
        half_open_probe_count: Probes let through since the last reset.
        total_failures: Lifetime failures.
        total_successes: Lifetime successes.
        last_failure_at: Timestamp of the most recent failure, if any.
        last_reset_at: Timestamp of the last full reset.
        time_since_last_failure: Seconds since ``last_failure_at``, if any.
        health_score: Lifetime success percentage in ``[0, 100]``.
    """

    key: str
    status: CircuitStatus
    consecutive_failures: int
    consecutive_successes: int
    half_open_probe_count: int
    total_failures: int
    total_successes: int
    last_failure_at: datetime | None
    last_reset_at: datetime
    time_since_last_failure: float | None
    health_score: int

    @property
    def is_open(self) -> bool:
        return self.status == CircuitStatus.OPEN


@dataclass(frozen=True)
class CircuitStats:
    """Aggregate dashboard entry for one circuit."""

    is_open: bool
    failures: int
    health_score: int
    operation_count: int


def snapshot_circuit(circuit: CircuitState, now: datetime) -> CircuitSnapshot:
    with circuit.lock:
        return CircuitSnapshot(
            key=circuit.key,
            status=circuit.status,
            consecutive_failures=circuit.consecutive_failures,
            consecutive_successes=circuit.consecutive_successes,
            half_open_probe_count=circuit.half_open_probe_count,
            total_failures=circuit.total_failures,
            total_successes=circuit.total_successes,
            last_failure_at=circuit.last_failure_at,
            last_reset_at=circuit.last_reset_at,
            time_since_last_failure=seconds_since_failure(circuit, now),
            health_score=health_score(
                circuit.total_successes, circuit.total_failures
            ),
        )


def circuit_stats(circuit: CircuitState) -> CircuitStats:
    with circuit.lock:
        return CircuitStats(
            is_open=circuit.status == CircuitStatus.OPEN,
            failures=circuit.consecutive_failures,
            health_score=health_score(
                circuit.total_successes, circuit.total_failures
            ),
            operation_count=circuit.operation_count,
        )
