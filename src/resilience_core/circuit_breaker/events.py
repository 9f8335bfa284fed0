"""Outbound circuit notifications."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from types import MappingProxyType
from typing import Protocol

import structlog

from resilience_core.logging import StructuredLogger, log_info, log_warning


class CircuitEventType(StrEnum):
    """Notification names published on circuit transitions."""

    OPENED = "circuit.opened"
    HALF_OPEN = "circuit.half_open"
    CLOSED = "circuit.closed"
    ERROR = "circuit.error"


@dataclass(frozen=True)
class CircuitEvent:
    """Advisory notification about one circuit.

    Attributes:
        type: Notification name.
        key: Operation key of the circuit.
        timestamp: UTC time the event was produced.
        data: Event-specific fields (``failure_count``/``reason`` for
            ``circuit.opened``, ``attempt`` for ``circuit.half_open``,
            ``message`` for ``circuit.error``).
    """

    type: CircuitEventType
    key: str
    timestamp: datetime
    data: Mapping[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    def as_message(self) -> dict[str, object]:
        """Return a JSON-serializable mapping of the event."""
        return {
            "type": self.type.value,
            "key": self.key,
            "timestamp": self.timestamp.isoformat(),
            **self.data,
        }


class CircuitNotifier(Protocol):
    """Receiver of circuit notifications.

    Delivery is fire-and-forget: ``publish`` must not block, and anything it
    raises is logged by the executor and otherwise ignored.
    """

    def publish(self, event: CircuitEvent) -> None:
        """Handle one circuit event."""


class LoggingNotifier:
    """Notifier that writes every circuit event to a structured logger."""

    def __init__(self, logger: StructuredLogger | None = None) -> None:
        self._logger: StructuredLogger = (
            structlog.stdlib.get_logger(__name__) if logger is None else logger
        )

    def publish(self, event: CircuitEvent) -> None:
        fields = dict(event.data)
        if event.type in (CircuitEventType.OPENED, CircuitEventType.ERROR):
            log_warning(self._logger, event.type.value, key=event.key, **fields)
            return
        log_info(self._logger, event.type.value, key=event.key, **fields)
