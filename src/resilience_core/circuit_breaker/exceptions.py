"""Circuit breaker exceptions.

Callers can distinguish between:
  - A call being rejected because the circuit is open.
  - An operation exceeding its per-call timeout.
  - A fallback failing after the primary path was rejected or failed.

Failures raised by the protected operation itself are re-raised unchanged.
"""


class CircuitBreakerError(Exception):
    """Base exception for the circuit breaker package."""


class CircuitOpenError(CircuitBreakerError):
    """Raised when a call is rejected because the circuit is open.

    Attributes:
        key: Operation key of the rejecting circuit.
        retry_after: Seconds until a probe may be attempted.
    """

    def __init__(self, key: str, retry_after: float) -> None:
        self.key = key
        self.retry_after = retry_after
        super().__init__(f"circuit_open: {key} retry_after={retry_after:g}s")


class OperationTimeoutError(CircuitBreakerError, TimeoutError):
    """Raised when a protected operation exceeds its per-call timeout.

    Attributes:
        key: Operation key of the circuit.
        timeout: Timeout in seconds that elapsed.
    """

    def __init__(self, key: str, timeout: float) -> None:
        self.key = key
        self.timeout = timeout
        super().__init__(f"operation_timeout: {key} timeout={timeout:g}s")


class FallbackError(CircuitBreakerError):
    """Raised when the fallback fails after the primary path did not succeed.

    The primary failure stays the effective cause: it is stored on
    ``primary_error`` and chained as ``__cause__``. The fallback failure is
    attached as ``fallback_error``.

    Attributes:
        key: Operation key of the circuit.
        primary_error: Operation failure, or the ``CircuitOpenError`` when the
            primary path was never attempted.
        fallback_error: Failure raised by the fallback.
    """

    def __init__(
        self,
        key: str,
        primary_error: BaseException,
        fallback_error: BaseException,
    ) -> None:
        self.key = key
        self.primary_error = primary_error
        self.fallback_error = fallback_error
        super().__init__(
            f"fallback_failed: {key} "
            f"primary={primary_error.__class__.__name__}: {primary_error} "
            f"fallback={fallback_error.__class__.__name__}: {fallback_error}"
        )
