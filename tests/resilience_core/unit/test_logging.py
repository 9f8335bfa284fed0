from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from typing import Protocol, cast

import pytest
import structlog

from resilience_core.circuit_breaker import CircuitStatus
from resilience_core.logging import (
    CIRCUIT_KEY_FIELD,
    _unwrap_enum_values,
    circuit_log_context,
    configure_structlog,
    get_log_level_value,
    log_error,
    log_exception,
    log_info,
    log_warning,
)
from tests.resilience_core.support.fakes import FakeLogger


def _configured_renderer() -> object:
    root_handler = logging.getLogger().handlers[0]
    formatter = root_handler.formatter
    assert isinstance(formatter, structlog.stdlib.ProcessorFormatter)
    return formatter.processors[-1]


def test_get_log_level_value_maps_known_levels() -> None:
    assert get_log_level_value("debug") == logging.DEBUG
    assert get_log_level_value("INFO") == logging.INFO
    assert get_log_level_value(" warning ") == logging.WARNING
    assert get_log_level_value("ERROR") == logging.ERROR
    assert get_log_level_value("critical") == logging.CRITICAL


def test_get_log_level_value_rejects_unknown_level() -> None:
    with pytest.raises(ValueError, match="log_level"):
        get_log_level_value("TRACE")


def test_configure_structlog_idempotent(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sys.stderr, "isatty", lambda: False, raising=False)

    first_logger = configure_structlog(log_level="INFO")
    second_logger = configure_structlog(log_level="DEBUG")

    assert len(logging.getLogger().handlers) == 1
    assert logging.getLogger().level == logging.DEBUG
    assert first_logger is not None
    assert second_logger is not None


def test_configure_structlog_uses_console_renderer_for_tty(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(sys.stderr, "isatty", lambda: True, raising=False)

    configure_structlog(log_level="INFO")

    assert isinstance(_configured_renderer(), structlog.dev.ConsoleRenderer)


def test_configure_structlog_uses_json_renderer_for_non_tty(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(sys.stderr, "isatty", lambda: False, raising=False)

    configure_structlog(log_level="INFO")

    assert isinstance(_configured_renderer(), structlog.processors.JSONRenderer)


def test_configure_structlog_json_flag_overrides_tty(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(sys.stderr, "isatty", lambda: True, raising=False)

    configure_structlog(log_level="INFO", json_logs=True)

    assert isinstance(_configured_renderer(), structlog.processors.JSONRenderer)


def test_unwrap_enum_values_renders_status_values() -> None:
    event_dict: structlog.typing.EventDict = {
        "event": "circuit_breaker.opened",
        "status": CircuitStatus.HALF_OPEN,
        "failure_count": 3,
    }

    processed = _unwrap_enum_values(None, "info", event_dict)

    assert processed == {
        "event": "circuit_breaker.opened",
        "status": "half_open",
        "failure_count": 3,
    }


def test_circuit_log_context_binds_and_clears_key() -> None:
    structlog.contextvars.clear_contextvars()

    with circuit_log_context("loadModule:shop"):
        bound = structlog.contextvars.get_contextvars()
        assert bound[CIRCUIT_KEY_FIELD] == "loadModule:shop"

    assert CIRCUIT_KEY_FIELD not in structlog.contextvars.get_contextvars()


class _CaptureHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


class _RecordWithStructuredFields(Protocol):
    circuit_key: str
    failure_count: int


@pytest.mark.parametrize(
    ("log_fn", "level"),
    [
        (log_info, "info"),
        (log_warning, "warning"),
        (log_error, "error"),
        (log_exception, "exception"),
    ],
)
def test_structured_log_helpers_forward_keyword_fields(
    log_fn: Callable[..., None],
    level: str,
    fake_logger: FakeLogger,
) -> None:
    log_fn(fake_logger, "circuit_breaker.opened", failure_count=3, reason="x")

    assert fake_logger.calls == [
        (
            level,
            "circuit_breaker.opened",
            {"failure_count": 3, "reason": "x"},
        )
    ]


def test_structured_log_helpers_support_stdlib_logger_extra() -> None:
    logger = logging.getLogger("tests.resilience_core.logging.helpers")
    logger.handlers.clear()
    logger.propagate = False
    logger.setLevel(logging.INFO)
    handler = _CaptureHandler()
    logger.addHandler(handler)

    log_warning(
        logger,
        "circuit_breaker.opened",
        circuit_key="modules_fetch",
        failure_count=3,
    )

    assert len(handler.records) == 1
    record = handler.records[0]
    typed_record = cast(_RecordWithStructuredFields, record)
    assert record.getMessage() == "circuit_breaker.opened"
    assert record.levelno == logging.WARNING
    assert typed_record.circuit_key == "modules_fetch"
    assert typed_record.failure_count == 3
