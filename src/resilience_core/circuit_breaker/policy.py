"""State transition policy for keyed circuits.

Every function here mutates the ``CircuitState`` it is given and returns what
happened, so the executor can log and notify outside the circuit lock. Callers
must hold ``circuit.lock``.

Two independent windows measured from the last failure govern an ``OPEN``
circuit: past ``half_open_timeout`` one probe is let through, past
``reset_timeout`` the circuit is fully reset without probing.
"""

from datetime import datetime
from enum import StrEnum

from resilience_core.circuit_breaker.config import BreakerConfig
from resilience_core.circuit_breaker.state import CircuitState, CircuitStatus


class Admission(StrEnum):
    """Outcome of asking whether a call may run."""

    PROCEED = "proceed"
    SELF_HEAL = "self_heal"
    PROBE = "probe"
    REJECT = "reject"


def seconds_since_failure(circuit: CircuitState, now: datetime) -> float | None:
    if circuit.last_failure_at is None:
        return None
    return (now - circuit.last_failure_at).total_seconds()


def retry_after(circuit: CircuitState, config: BreakerConfig, now: datetime) -> float:
    """Return seconds until an ``OPEN`` circuit admits a probe."""
    elapsed = seconds_since_failure(circuit, now) or 0.0
    return max(config.half_open_timeout - elapsed, 0.0)


def reset_circuit(circuit: CircuitState, now: datetime) -> None:
    """Return ``circuit`` to ``CLOSED`` with zeroed transient counters."""
    circuit.status = CircuitStatus.CLOSED
    circuit.consecutive_failures = 0
    circuit.consecutive_successes = 0
    circuit.last_failure_at = None
    circuit.half_open_probe_count = 0
    circuit.last_reset_at = now


def admit(circuit: CircuitState, config: BreakerConfig, now: datetime) -> Admission:
    """Decide whether a call may run and apply any ``OPEN`` transition.

    ``CLOSED`` and ``HALF_OPEN`` circuits always admit. An ``OPEN`` circuit
    self-heals past ``reset_timeout``, moves to ``HALF_OPEN`` past
    ``half_open_timeout`` and rejects otherwise.
    """
    if circuit.status != CircuitStatus.OPEN:
        return Admission.PROCEED

    # A missing failure timestamp counts as a failure that just happened.
    elapsed = seconds_since_failure(circuit, now) or 0.0
    if elapsed > config.reset_timeout:
        reset_circuit(circuit, now)
        return Admission.SELF_HEAL
    if elapsed > config.half_open_timeout:
        circuit.status = CircuitStatus.HALF_OPEN
        circuit.half_open_probe_count += 1
        return Admission.PROBE
    return Admission.REJECT


def record_success(circuit: CircuitState, config: BreakerConfig, now: datetime) -> bool:
    """Apply a successful outcome. Return ``True`` when the circuit closed.

    A success landing on an ``OPEN`` circuit (a call admitted before a
    concurrent failure reopened it) only counts toward lifetime totals.
    """
    circuit.total_successes += 1
    if circuit.status == CircuitStatus.OPEN:
        return False
    if circuit.status == CircuitStatus.HALF_OPEN:
        circuit.consecutive_successes += 1
        if circuit.consecutive_successes >= config.success_threshold:
            reset_circuit(circuit, now)
            return True
    elif circuit.consecutive_failures > 0:
        circuit.consecutive_failures -= 1
        circuit.consecutive_successes += 1
    return False


def record_failure(circuit: CircuitState, config: BreakerConfig, now: datetime) -> bool:
    """Apply a failed outcome. Return ``True`` when the circuit (re)opened.

    A failing probe reopens the circuit without waiting for the failure count
    to reach ``failure_threshold`` again.
    """
    was_probing = circuit.status == CircuitStatus.HALF_OPEN
    circuit.consecutive_failures += 1
    circuit.total_failures += 1
    circuit.last_failure_at = now
    circuit.consecutive_successes = 0

    if circuit.status == CircuitStatus.OPEN:
        return False
    if was_probing or circuit.consecutive_failures >= config.failure_threshold:
        circuit.status = CircuitStatus.OPEN
        return True
    return False
