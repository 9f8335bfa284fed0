from __future__ import annotations

from pydantic import ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from resilience_core.circuit_breaker.config import BreakerConfig
from resilience_core.logging import get_log_level_value

ENV_PREFIX = "RESILIENCE_"


def prefixed_settings_config(prefix: str) -> SettingsConfigDict:
    """Build standard Pydantic settings config for prefixed environments."""
    return SettingsConfigDict(env_prefix=prefix, case_sensitive=False)


class BreakerSettings(BaseSettings):
    """Process-wide breaker settings loaded from ``RESILIENCE_*`` variables."""

    model_config = prefixed_settings_config(ENV_PREFIX)

    failure_threshold: int = 3
    reset_timeout_ms: int = 60_000
    half_open_timeout_ms: int = 5_000
    success_threshold: int = 2
    max_retry_attempts: int = 5
    log_level: str = "INFO"
    kafka_bootstrap_servers: str | None = None
    kafka_events_topic: str = "circuit-events"
    kafka_client_id: str | None = None

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip().upper()
            get_log_level_value(normalized)
            return normalized
        return value

    @field_validator(
        "kafka_bootstrap_servers",
        "kafka_client_id",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("kafka_events_topic", mode="before")
    @classmethod
    def _validate_required_string(cls, value: object, info: ValidationInfo) -> object:
        if not isinstance(value, str):
            return value
        normalized = value.strip()
        if not normalized:
            raise ValueError(f"{info.field_name} must be non-empty")
        return normalized

    @model_validator(mode="after")
    def _validate_breaker_settings(self) -> BreakerSettings:
        for name in ("failure_threshold", "success_threshold", "max_retry_attempts"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")
        if self.half_open_timeout_ms < 0:
            raise ValueError("half_open_timeout_ms must be >= 0")
        if self.half_open_timeout_ms >= self.reset_timeout_ms:
            raise ValueError("half_open_timeout_ms must be < reset_timeout_ms")
        return self

    def breaker_config(self) -> BreakerConfig:
        """Build the executor config, converting milliseconds to seconds."""
        return BreakerConfig(
            failure_threshold=self.failure_threshold,
            reset_timeout=self.reset_timeout_ms / 1000,
            half_open_timeout=self.half_open_timeout_ms / 1000,
            success_threshold=self.success_threshold,
            max_retry_attempts=self.max_retry_attempts,
        )

    def kafka_enabled(self) -> bool:
        return self.kafka_bootstrap_servers is not None
