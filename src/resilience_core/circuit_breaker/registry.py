"""Keyed registry of circuit states.

The registry is the only shared mutable structure of a breaker. Insertion is
guarded by a registry-wide lock so concurrent first calls for a key never
create duplicate circuits; every circuit carries its own lock so unrelated
keys never contend with each other.
"""

import threading
from collections.abc import Iterator
from datetime import UTC, datetime

from resilience_core.circuit_breaker import policy
from resilience_core.circuit_breaker.state import CircuitState


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BreakerRegistry:
    """In-memory map of operation key to ``CircuitState``."""

    def __init__(self) -> None:
        self._circuits: dict[str, CircuitState] = {}
        self._lock = threading.Lock()

    def __contains__(self, key: object) -> bool:
        return key in self._circuits

    def __len__(self) -> int:
        return len(self._circuits)

    def keys(self) -> list[str]:
        """Return known keys in insertion order."""
        with self._lock:
            return list(self._circuits)

    def items(self) -> Iterator[tuple[str, CircuitState]]:
        with self._lock:
            circuits = list(self._circuits.items())
        yield from circuits

    def get(self, key: str) -> CircuitState | None:
        """Return the circuit for ``key`` or ``None`` if it was never used."""
        return self._circuits.get(key)

    def get_or_create(self, key: str) -> CircuitState:
        """Return the circuit for ``key``, creating a ``CLOSED`` one if missing."""
        circuit = self._circuits.get(key)
        if circuit is not None:
            return circuit
        with self._lock:
            circuit = self._circuits.get(key)
            if circuit is None:
                circuit = CircuitState(key=key, last_reset_at=_utcnow())
                self._circuits[key] = circuit
            return circuit

    def reset(self, key: str) -> bool:
        """Reset transient state of ``key``, keeping lifetime totals.

        Returns:
            ``True`` if the circuit existed and was reset, ``False`` otherwise.
        """
        circuit = self._circuits.get(key)
        if circuit is None:
            return False
        with circuit.lock:
            policy.reset_circuit(circuit, _utcnow())
        return True

    def reset_all(self) -> None:
        """Reset every known circuit. Each reset is atomic on its own."""
        for key in self.keys():
            self.reset(key)
