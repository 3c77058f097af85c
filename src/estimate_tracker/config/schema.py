"""Configuration schema and validation using Pydantic.

This module defines the settings schema that validates and coerces
configuration values from the environment, project files and programmatic
overrides into the correct types with proper defaults.
"""

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "ESTIMATE_TRACKER_"


class TrackerSettings(BaseSettings):
    """Pydantic settings schema for the delete subsystem.

    Environment variables use the ESTIMATE_TRACKER_ prefix, e.g.
    ``ESTIMATE_TRACKER_MAX_RETRIES=5``.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=None,
        case_sensitive=False,
        extra="ignore",
    )

    # --- Delete behavior ---

    enable_optimistic_updates: bool = Field(
        default=True,
        description="Remove entities from caller state before the backend confirms",
    )

    enable_retry: bool = Field(
        default=True,
        description="Retry retryable delete failures with exponential backoff",
    )

    max_retries: int = Field(
        default=3,
        description="Retries allowed after the initial delete attempt",
        ge=0,
    )

    base_delay_ms: float = Field(
        default=1000,
        description="Backoff before the first retry; doubles on each retry",
        ge=0,
    )

    bulk_batch_size: int = Field(
        default=10,
        description="Concurrent deletes per batch in bulk deletes",
        ge=1,
    )

    # --- Instrumentation ---

    slow_delete_threshold_ms: float = Field(
        default=1000,
        description="Delete duration that triggers a slow-operation warning",
        gt=0,
    )

    memory_growth_warning_bytes: int = Field(
        default=1024 * 1024,
        description="Memory growth per operation that triggers a warning",
        gt=0,
    )

    leak_warning_threshold: int = Field(
        default=100,
        description="Tracked objects per type above which a leak is reported",
        ge=0,
    )

    leak_check_interval_ms: float = Field(
        default=30_000,
        description="Interval of the periodic leak check",
        ge=1,
    )

    stats_window: int = Field(
        default=100,
        description="Recent samples averaged into the response time",
        ge=1,
    )

    telemetry_enabled: bool = Field(
        default=False,
        description="Forward operation timings to telemetry reporters",
    )

    @classmethod
    def defaults(cls) -> dict[str, Any]:
        """Schema defaults, without reading the environment."""
        return {
            name: field.get_default(call_default_factory=True)
            for name, field in cls.model_fields.items()
        }

    @classmethod
    def env_var_names(cls) -> dict[str, str]:
        """Map each environment variable name to its field name."""
        return {f"{ENV_PREFIX}{name.upper()}": name for name in cls.model_fields}

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary of field values."""
        return self.model_dump()
