from __future__ import annotations

import asyncio

import structlog
from faststream.confluent import KafkaBroker

from resilience_core.circuit_breaker.events import CircuitEvent
from resilience_core.logging import log_warning
from resilience_core.settings import BreakerSettings

_logger = structlog.stdlib.get_logger(__name__)


def build_kafka_broker(settings: BreakerSettings) -> KafkaBroker:
    """Build an unconnected FastStream broker for circuit notifications.

    Raises:
        ValueError: If ``kafka_bootstrap_servers`` is not configured.
    """
    if settings.kafka_bootstrap_servers is None:
        raise ValueError("kafka_bootstrap_servers is required for Kafka notifications")
    if settings.kafka_client_id:
        return KafkaBroker(
            settings.kafka_bootstrap_servers,
            client_id=settings.kafka_client_id,
        )
    return KafkaBroker(settings.kafka_bootstrap_servers)


class KafkaCircuitNotifier:
    """Publish circuit events to a Kafka topic through a FastStream broker.

    Events are keyed by circuit key so every transition of one circuit lands
    on the same partition in order. Publishing runs in background tasks;
    failures are logged and dropped. The broker must already be connected,
    typically by the FastStream application that owns it.
    """

    def __init__(self, *, broker: KafkaBroker, topic: str) -> None:
        """Create a notifier bound to one broker and topic.

        Args:
            broker: Connected FastStream Kafka broker.
            topic: Destination topic for circuit events.
        """
        self._broker = broker
        self._topic = topic
        self._pending: set[asyncio.Task[None]] = set()

    @classmethod
    def from_settings(
        cls, settings: BreakerSettings, *, broker: KafkaBroker | None = None
    ) -> KafkaCircuitNotifier:
        resolved = build_kafka_broker(settings) if broker is None else broker
        return cls(broker=resolved, topic=settings.kafka_events_topic)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def publish(self, event: CircuitEvent) -> None:
        """Schedule ``event`` for delivery on the running event loop."""
        task = asyncio.get_running_loop().create_task(
            self._send(event),
            name=f"circuit_notifier:{event.type.value}:{event.key}",
        )
        self._pending.add(task)
        task.add_done_callback(self._on_send_done)

    async def _send(self, event: CircuitEvent) -> None:
        await self._broker.publish(
            event.as_message(),
            topic=self._topic,
            key=event.key.encode(),
        )

    def _on_send_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            log_warning(
                _logger,
                "circuit_notifier.publish_failed",
                topic=self._topic,
                task=task.get_name(),
                error=f"{error.__class__.__name__}: {error}",
            )

    async def close(self) -> None:
        """Wait for in-flight publishes to finish."""
        pending = tuple(self._pending)
        if not pending:
            return
        await asyncio.gather(*pending, return_exceptions=True)
