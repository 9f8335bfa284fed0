"""Keyed circuit breaker executor."""

from __future__ import annotations

import asyncio
import dataclasses
from collections.abc import Awaitable, Callable, Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING, TypeVar

import structlog

from resilience_core.circuit_breaker import policy
from resilience_core.circuit_breaker.config import BreakerConfig, ExecutionOptions
from resilience_core.circuit_breaker.events import (
    CircuitEvent,
    CircuitEventType,
    CircuitNotifier,
)
from resilience_core.circuit_breaker.exceptions import (
    CircuitOpenError,
    FallbackError,
    OperationTimeoutError,
)
from resilience_core.circuit_breaker.registry import BreakerRegistry
from resilience_core.circuit_breaker.state import CircuitState, CircuitStatus
from resilience_core.circuit_breaker.stats import (
    CircuitSnapshot,
    CircuitStats,
    circuit_stats,
    snapshot_circuit,
)
from resilience_core.logging import (
    circuit_log_context,
    log_error,
    log_exception,
    log_info,
    log_warning,
)

if TYPE_CHECKING:
    from resilience_core.settings import BreakerSettings

T = TypeVar("T")

_logger = structlog.stdlib.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _describe(exc: BaseException) -> str:
    return f"{exc.__class__.__name__}: {exc}"


class BreakerExecutor:
    """Run async operations behind independent per-key circuits."""

    def __init__(
        self,
        *,
        config: BreakerConfig | None = None,
        registry: BreakerRegistry | None = None,
        notifiers: Sequence[CircuitNotifier] | None = None,
    ) -> None:
        """Build an executor with optional custom dependencies.

        Args:
            config: Thresholds and windows shared by every circuit. Defaults
                to ``BreakerConfig()``.
            registry: Circuit registry. Defaults to a fresh registry.
            notifiers: Receivers of circuit transition notifications.
        """
        self._config = BreakerConfig() if config is None else config
        self._registry = BreakerRegistry() if registry is None else registry
        self._notifiers = tuple(notifiers) if notifiers is not None else ()

    @classmethod
    def from_settings(
        cls,
        settings: BreakerSettings,
        *,
        registry: BreakerRegistry | None = None,
        notifiers: Sequence[CircuitNotifier] | None = None,
    ) -> BreakerExecutor:
        """Build an executor configured from environment settings."""
        return cls(
            config=settings.breaker_config(),
            registry=registry,
            notifiers=notifiers,
        )

    @property
    def config(self) -> BreakerConfig:
        return self._config

    @property
    def registry(self) -> BreakerRegistry:
        return self._registry

    def configure(self, **overrides: int | float) -> BreakerConfig:
        """Replace selected config values for all circuits.

        Raises:
            ValueError: If the resulting config is invalid.
            TypeError: If an override names an unknown field.
        """
        self._config = dataclasses.replace(self._config, **overrides)
        log_info(
            _logger,
            "circuit_breaker.configured",
            **dataclasses.asdict(self._config),
        )
        return self._config

    def _notify(self, event_type: CircuitEventType, key: str, **data: object) -> None:
        if not self._notifiers:
            return
        event = CircuitEvent(type=event_type, key=key, timestamp=_utcnow(), data=data)
        for notifier in self._notifiers:
            try:
                notifier.publish(event)
            except Exception:
                log_exception(
                    _logger,
                    "circuit_breaker.notifier_failed",
                    event_type=event_type.value,
                    notifier=notifier.__class__.__qualname__,
                )

    async def execute(
        self,
        key: str,
        operation: Callable[[], Awaitable[T]],
        options: ExecutionOptions[T] | None = None,
    ) -> T:
        """Invoke ``operation`` under the circuit for ``key``.

        Args:
            key: Non-empty operation key selecting the circuit.
            operation: Zero-argument async callable to protect.
            options: Optional timeout, fallback and error-notification flag.

        Returns:
            The operation result, or the fallback result when the circuit
            rejected the call or the operation failed.

        Raises:
            ValueError: If ``key`` is empty.
            CircuitOpenError: When the circuit is open and no fallback exists.
            OperationTimeoutError: When the operation exceeded ``timeout`` and
                no fallback exists.
            FallbackError: When the fallback failed; chained from the primary
                failure.
            Exception: The original operation failure when no fallback exists.
        """
        if not key:
            raise ValueError("key must be a non-empty string")
        opts: ExecutionOptions[T] = ExecutionOptions() if options is None else options
        config = self._config
        circuit = self._registry.get_or_create(key)

        with circuit_log_context(key):
            now = _utcnow()
            with circuit.lock:
                admission = policy.admit(circuit, config, now)
                probe_attempt = circuit.half_open_probe_count
                wait = policy.retry_after(circuit, config, now)

            if admission == policy.Admission.SELF_HEAL:
                log_info(_logger, "circuit_breaker.closed", reason="reset_timeout")
                self._notify(CircuitEventType.CLOSED, key)
            elif admission == policy.Admission.PROBE:
                log_info(_logger, "circuit_breaker.half_open", attempt=probe_attempt)
                self._notify(CircuitEventType.HALF_OPEN, key, attempt=probe_attempt)
            elif admission == policy.Admission.REJECT:
                rejection = CircuitOpenError(key, retry_after=wait)
                if opts.fallback is None:
                    log_warning(_logger, "circuit_breaker.rejected", retry_after=wait)
                    raise rejection
                log_info(_logger, "circuit_breaker.fallback_used", reason="open")
                return await self._run_fallback(key, opts.fallback, rejection)

            try:
                result = await self._run_operation(key, operation, opts.timeout)
            except Exception as exc:
                self._record_failure(key, circuit, config, exc, opts.silent_errors)
                if opts.fallback is None:
                    raise
                log_info(_logger, "circuit_breaker.fallback_used", reason="failure")
                return await self._run_fallback(key, opts.fallback, exc)

            self._record_success(key, circuit, config)
            return result

    @staticmethod
    async def _run_operation(
        key: str,
        operation: Callable[[], Awaitable[T]],
        timeout: float | None,
    ) -> T:
        if timeout is None:
            return await operation()

        scope = asyncio.timeout(timeout)
        try:
            async with scope:
                return await operation()
        except TimeoutError as exc:
            if not scope.expired():
                raise
            raise OperationTimeoutError(key, timeout) from exc

    @staticmethod
    async def _run_fallback(
        key: str,
        fallback: Callable[[], Awaitable[T]],
        primary_error: Exception,
    ) -> T:
        try:
            return await fallback()
        except Exception as fallback_exc:
            log_error(
                _logger,
                "circuit_breaker.fallback_failed",
                primary_error=_describe(primary_error),
                fallback_error=_describe(fallback_exc),
            )
            raise FallbackError(key, primary_error, fallback_exc) from primary_error

    def _record_success(
        self, key: str, circuit: CircuitState, config: BreakerConfig
    ) -> None:
        with circuit.lock:
            closed = policy.record_success(circuit, config, _utcnow())
        if closed:
            log_info(_logger, "circuit_breaker.closed", reason="probe_succeeded")
            self._notify(CircuitEventType.CLOSED, key)

    def _record_failure(
        self,
        key: str,
        circuit: CircuitState,
        config: BreakerConfig,
        exc: Exception,
        silent: bool,
    ) -> None:
        with circuit.lock:
            opened = policy.record_failure(circuit, config, _utcnow())
            failure_count = circuit.consecutive_failures

        reason = _describe(exc)
        if opened:
            log_warning(
                _logger,
                "circuit_breaker.opened",
                failure_count=failure_count,
                reason=reason,
            )
            self._notify(
                CircuitEventType.OPENED,
                key,
                failure_count=failure_count,
                reason=reason,
            )
        if not silent:
            log_warning(_logger, "circuit_breaker.operation_failed", error=reason)
            self._notify(CircuitEventType.ERROR, key, message=reason)

    def get_circuit_state(self, key: str) -> CircuitSnapshot | None:
        """Return a snapshot of ``key``, or ``None`` if it was never used."""
        circuit = self._registry.get(key)
        if circuit is None:
            return None
        return snapshot_circuit(circuit, _utcnow())

    def get_all_circuit_stats(self) -> dict[str, CircuitStats]:
        """Return dashboard stats for every known circuit."""
        return {key: circuit_stats(circuit) for key, circuit in self._registry.items()}

    def is_circuit_open(self, key: str) -> bool:
        circuit = self._registry.get(key)
        return circuit is not None and circuit.status == CircuitStatus.OPEN

    def reset(self, key: str) -> bool:
        """Manually close ``key``, keeping its lifetime totals."""
        reset = self._registry.reset(key)
        if reset:
            log_info(_logger, "circuit_breaker.reset", circuit_key=key)
        return reset

    def reset_all(self) -> None:
        self._registry.reset_all()
        log_info(_logger, "circuit_breaker.reset_all", circuits=len(self._registry))
