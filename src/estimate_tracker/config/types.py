"""Core configuration data types.

Configuration is resolved once from all sources, then frozen and handed to
components.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, NamedTuple

# --- Source Tracking Types ---

ConfigOrigin = Literal["programmatic", "env", "file", "default"]
SourceMap = Mapping[str, ConfigOrigin]

FIELD_ORDER = (
    "enable_optimistic_updates",
    "enable_retry",
    "max_retries",
    "base_delay_ms",
    "bulk_batch_size",
    "slow_delete_threshold_ms",
    "memory_growth_warning_bytes",
    "leak_warning_threshold",
    "leak_check_interval_ms",
    "stats_window",
    "telemetry_enabled",
)


class ResolvedConfig(NamedTuple):
    """Configuration after resolution from all sources, before freezing.

    Carries an ``origin`` map recording where each value came from.
    """

    enable_optimistic_updates: bool
    enable_retry: bool
    max_retries: int
    base_delay_ms: float
    bulk_batch_size: int
    slow_delete_threshold_ms: float
    memory_growth_warning_bytes: int
    leak_warning_threshold: int
    leak_check_interval_ms: float
    stats_window: int
    telemetry_enabled: bool

    # Audit metadata - tracks where each field value came from
    origin: SourceMap

    def to_frozen(self) -> "FrozenConfig":
        """Convert to the immutable configuration used by components."""
        return FrozenConfig(**{name: getattr(self, name) for name in FIELD_ORDER})

    def with_overrides(self, **overrides: object) -> "ResolvedConfig":
        """Create a new ResolvedConfig with programmatic overrides applied.

        Unknown fields are ignored. Values are not re-validated; use
        ``resolve_config`` for validated overrides.
        """
        new_values = self._asdict()
        new_origin = dict(self.origin)

        for field, value in overrides.items():
            if field in FIELD_ORDER:
                new_values[field] = value
                new_origin[field] = "programmatic"

        new_values["origin"] = new_origin
        return ResolvedConfig(**new_values)

    def audit(self) -> str:
        """Report the origin of each field, one ``field: origin:value`` per line."""
        lines = []
        for field in FIELD_ORDER:
            if field not in self.origin:
                continue
            origin = self.origin[field]
            value = getattr(self, field)
            if origin == "env":
                lines.append(f"{field}: env:ESTIMATE_TRACKER_{field.upper()}={value}")
            else:
                lines.append(f"{field}: {origin}:{value}")
        return "\n".join(lines)


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable configuration handed to the delete orchestrator."""

    enable_optimistic_updates: bool = True
    enable_retry: bool = True
    max_retries: int = 3
    base_delay_ms: float = 1000
    bulk_batch_size: int = 10
    slow_delete_threshold_ms: float = 1000
    memory_growth_warning_bytes: int = 1024 * 1024
    leak_warning_threshold: int = 100
    leak_check_interval_ms: float = 30_000
    stats_window: int = 100
    telemetry_enabled: bool = False
