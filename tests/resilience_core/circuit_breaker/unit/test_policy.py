from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from resilience_core.circuit_breaker import BreakerConfig, CircuitState, CircuitStatus
from resilience_core.circuit_breaker.policy import (
    Admission,
    admit,
    record_failure,
    record_success,
    reset_circuit,
    retry_after,
)

T0 = datetime(2020, 1, 1, tzinfo=UTC)
CONFIG = BreakerConfig(
    failure_threshold=3,
    reset_timeout=60.0,
    half_open_timeout=5.0,
    success_threshold=2,
)


def _at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


def _open_circuit() -> CircuitState:
    circuit = CircuitState(key="svc", last_reset_at=T0)
    for _ in range(CONFIG.failure_threshold):
        record_failure(circuit, CONFIG, T0)
    assert circuit.status == CircuitStatus.OPEN
    return circuit


def test_closed_and_half_open_circuits_always_admit() -> None:
    circuit = CircuitState(key="svc", last_reset_at=T0)
    assert admit(circuit, CONFIG, T0) == Admission.PROCEED

    circuit.status = CircuitStatus.HALF_OPEN
    assert admit(circuit, CONFIG, T0) == Admission.PROCEED


@pytest.mark.parametrize(
    ("elapsed", "expected", "status"),
    [
        (0.0, Admission.REJECT, CircuitStatus.OPEN),
        (5.0, Admission.REJECT, CircuitStatus.OPEN),
        (5.001, Admission.PROBE, CircuitStatus.HALF_OPEN),
        (60.0, Admission.PROBE, CircuitStatus.HALF_OPEN),
        (60.001, Admission.SELF_HEAL, CircuitStatus.CLOSED),
    ],
)
def test_open_circuit_windows_are_strict(
    elapsed: float,
    expected: Admission,
    status: CircuitStatus,
) -> None:
    circuit = _open_circuit()

    assert admit(circuit, CONFIG, _at(elapsed)) == expected
    assert circuit.status == status


def test_probe_admission_counts_attempts() -> None:
    circuit = _open_circuit()

    admit(circuit, CONFIG, _at(6.0))

    assert circuit.half_open_probe_count == 1
    assert circuit.consecutive_failures == 3


def test_self_heal_resets_counters_but_keeps_totals() -> None:
    circuit = _open_circuit()
    circuit.total_successes = 4

    admit(circuit, CONFIG, _at(61.0))

    assert circuit.consecutive_failures == 0
    assert circuit.consecutive_successes == 0
    assert circuit.last_failure_at is None
    assert circuit.last_reset_at == _at(61.0)
    assert circuit.total_failures == 3
    assert circuit.total_successes == 4


def test_retry_after_counts_down_short_window() -> None:
    circuit = _open_circuit()

    assert retry_after(circuit, CONFIG, _at(2.0)) == pytest.approx(3.0)
    assert retry_after(circuit, CONFIG, _at(9.0)) == 0.0


def test_open_circuit_without_failure_timestamp_rejects() -> None:
    circuit = CircuitState(key="svc", last_reset_at=T0, status=CircuitStatus.OPEN)

    assert admit(circuit, CONFIG, _at(3600.0)) == Admission.REJECT
    assert retry_after(circuit, CONFIG, T0) == CONFIG.half_open_timeout


def test_probe_successes_close_at_success_threshold() -> None:
    circuit = _open_circuit()
    admit(circuit, CONFIG, _at(6.0))

    assert record_success(circuit, CONFIG, _at(6.0)) is False
    assert circuit.status == CircuitStatus.HALF_OPEN
    assert record_success(circuit, CONFIG, _at(7.0)) is True
    assert circuit.status == CircuitStatus.CLOSED
    assert circuit.half_open_probe_count == 0
    assert circuit.total_successes == 2


def test_failure_while_half_open_reopens_below_threshold() -> None:
    config = BreakerConfig(failure_threshold=10)
    circuit = CircuitState(
        key="svc",
        last_reset_at=T0,
        status=CircuitStatus.HALF_OPEN,
        half_open_probe_count=1,
        consecutive_failures=0,
    )

    assert record_failure(circuit, config, _at(1.0)) is True
    assert circuit.status == CircuitStatus.OPEN
    assert circuit.last_failure_at == _at(1.0)


def test_failure_while_already_open_does_not_report_reopening() -> None:
    circuit = _open_circuit()

    assert record_failure(circuit, CONFIG, _at(1.0)) is False
    assert circuit.consecutive_failures == 4
    assert circuit.last_failure_at == _at(1.0)


def test_failure_clears_success_streak() -> None:
    circuit = CircuitState(key="svc", last_reset_at=T0, consecutive_successes=4)

    record_failure(circuit, CONFIG, T0)

    assert circuit.consecutive_successes == 0
    assert circuit.consecutive_failures == 1


def test_success_on_reopened_circuit_only_counts_total() -> None:
    circuit = _open_circuit()
    admit(circuit, CONFIG, _at(6.0))
    record_failure(circuit, CONFIG, _at(6.5))
    assert circuit.status == CircuitStatus.OPEN

    assert record_success(circuit, CONFIG, _at(7.0)) is False
    assert circuit.status == CircuitStatus.OPEN
    assert circuit.consecutive_successes == 0
    assert circuit.consecutive_failures == 4
    assert circuit.total_successes == 1


def test_success_without_failures_only_counts_total() -> None:
    circuit = CircuitState(key="svc", last_reset_at=T0)

    assert record_success(circuit, CONFIG, T0) is False
    assert circuit.consecutive_successes == 0
    assert circuit.total_successes == 1


def test_reset_circuit_returns_to_closed() -> None:
    circuit = _open_circuit()

    reset_circuit(circuit, _at(1.0))

    assert circuit.status == CircuitStatus.CLOSED
    assert circuit.last_reset_at == _at(1.0)
    assert circuit.total_failures == 3
