from __future__ import annotations

import pytest

import resilience_core.circuit_breaker.breaker as breaker_mod
import resilience_core.circuit_breaker.registry as registry_mod
from tests.resilience_core.support.fakes import (
    FakeClock,
    FakeLogger,
    RecordingNotifier,
)


@pytest.fixture
def fake_logger() -> FakeLogger:
    """Provide a fresh structured logger test double per test."""
    return FakeLogger()


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    """Drive breaker and registry timestamps from one manual clock."""
    fake = FakeClock()
    monkeypatch.setattr(breaker_mod, "_utcnow", fake.now)
    monkeypatch.setattr(registry_mod, "_utcnow", fake.now)
    return fake


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Provide a notifier capturing circuit events."""
    return RecordingNotifier()
