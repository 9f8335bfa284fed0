from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from functools import partial
from typing import Literal, Protocol

import structlog
from structlog.typing import EventDict

_LOG_LEVELS: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

CIRCUIT_KEY_FIELD = "circuit_key"

_StdlibLogger = logging.Logger | logging.LoggerAdapter[logging.Logger]


class StructuredLogger(Protocol):
    """Anything accepting ``logger.<level>(event, **fields)`` calls."""

    def info(self, event: str, **kwargs: object) -> None: ...

    def warning(self, event: str, **kwargs: object) -> None: ...

    def error(self, event: str, **kwargs: object) -> None: ...

    def exception(self, event: str, **kwargs: object) -> None: ...


def get_log_level_value(level: str) -> int:
    """Return stdlib log level constant for a normalized level string."""
    normalized = level.strip().upper()
    try:
        return _LOG_LEVELS[normalized]
    except KeyError as error:
        choices = ", ".join(sorted(_LOG_LEVELS))
        raise ValueError(f"log_level must be one of: {choices}") from error


def _select_renderer(json_logs: bool | None) -> structlog.types.Processor:
    if json_logs is None:
        json_logs = not sys.stderr.isatty()
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def _unwrap_enum_values(_: object, __: str, event_dict: EventDict) -> EventDict:
    """Render enum fields (circuit statuses, event types) as plain values."""
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.value
    return event_dict


@contextmanager
def circuit_log_context(key: str) -> Iterator[None]:
    """Bind ``circuit_key`` to every structlog event emitted in this block."""
    with structlog.contextvars.bound_contextvars(**{CIRCUIT_KEY_FIELD: key}):
        yield


_LevelName = Literal["info", "warning", "error", "exception"]


def _log(
    level: _LevelName,
    logger: StructuredLogger | _StdlibLogger,
    event: str,
    **fields: object,
) -> None:
    """Emit ``event`` at ``level``.

    Stdlib loggers receive the fields as ``extra`` so they land on the
    ``LogRecord``; structlog loggers take them as keyword arguments.
    """
    method = getattr(logger, level)
    if isinstance(logger, (logging.Logger, logging.LoggerAdapter)):
        method(event, extra=fields)
    else:
        method(event, **fields)


log_info = partial(_log, "info")
log_warning = partial(_log, "warning")
log_error = partial(_log, "error")
log_exception = partial(_log, "exception")


def configure_structlog(
    *,
    log_level: str,
    json_logs: bool | None = None,
) -> structlog.stdlib.BoundLogger:
    """Configure structlog + stdlib logging for services embedding breakers.

    Args:
        log_level: Root log level name.
        json_logs: Force JSON (``True``) or console (``False``) rendering.
            Defaults to JSON unless stderr is a TTY.
    """
    level_value = get_log_level_value(log_level)
    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
    renderer = _select_renderer(json_logs)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        _unwrap_enum_values,
        timestamper,
    ]

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    logging.basicConfig(
        format="%(message)s",
        handlers=[handler],
        level=level_value,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            _unwrap_enum_values,
            structlog.stdlib.PositionalArgumentsFormatter(),
            timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    return structlog.stdlib.get_logger()
