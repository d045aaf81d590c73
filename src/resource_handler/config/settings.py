"""Handler runtime settings."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from resource_handler.handlers.stabilize import StabilizationPolicy

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def normalize_log_level(value: str) -> str:
    """Upper-case *value* and check it names a ``logging`` level."""
    level = value.strip().upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"log level must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
    return level


class HandlerSettings(BaseSettings):
    """Runtime knobs for the entrypoint and the bundled handlers.

    Fields can be set via YAML (constructor kwargs) or environment variables
    with the ``HANDLER_`` prefix.  Constructor kwargs take precedence.
    """

    model_config = SettingsConfigDict(env_prefix="HANDLER_", extra="ignore")

    region: str | None = None
    endpoint_url: str | None = None
    log_level: str = "INFO"

    callback_delay_seconds: int = Field(default=5, ge=0)
    max_stabilization_attempts: int = Field(default=60, ge=1)
    max_retries: int = Field(default=5, ge=0)
    retry_delay_seconds: int = Field(default=5, ge=0)
    backoff_rate: float = Field(default=2.0, ge=1.0)
    max_delay_seconds: int = Field(default=60, ge=1)
    list_page_size: int = Field(default=100, ge=1, le=100)

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        return normalize_log_level(v)

    def to_policy(self) -> StabilizationPolicy:
        return StabilizationPolicy(
            max_attempts=self.max_stabilization_attempts,
            delay_seconds=self.callback_delay_seconds,
            max_retries=self.max_retries,
            retry_delay_seconds=self.retry_delay_seconds,
            backoff_rate=self.backoff_rate,
            max_delay_seconds=self.max_delay_seconds,
        )
