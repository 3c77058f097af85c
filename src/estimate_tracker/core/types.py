"""Core data types used by the delete subsystem.

These are small, explicit records rather than open-ended mappings. Records
that represent a finished fact (guidance, attempt samples, stats snapshots)
are frozen; the in-flight ``OperationMetric`` is the only mutable record and
is completed exactly once by the performance monitor.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
import dataclasses
from enum import Enum
from types import MappingProxyType
import typing

# --- Minimal guard helpers ---


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


def _freeze_mapping[V](m: Mapping[str, V] | None) -> Mapping[str, V]:
    """Return an immutable mapping view (empty when ``m`` is None)."""
    if isinstance(m, MappingProxyType):
        return m
    return MappingProxyType(dict(m or {}))


# --- Classification vocabulary ---


class ErrorCategory(str, Enum):
    """Coarse error kinds used to drive retry and messaging decisions."""

    NETWORK = "network"
    PERMISSION = "permission"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    CONFLICT = "conflict"
    DEFAULT = "default"


class GuidanceAction(str, Enum):
    """Follow-up affordance a UI may offer after a failed delete."""

    RETRY = "retry"
    REAUTH = "reauth"
    REFRESH = "refresh"
    NONE = "none"


class Severity(str, Enum):
    """Notification severity for a failed delete."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class DeleteOutcome(str, Enum):
    """Terminal outcome of one delete attempt sequence."""

    SUCCESS = "success"
    FAILURE = "failure"


@dataclasses.dataclass(frozen=True, slots=True)
class ErrorGuidance:
    """User-facing guidance for one error category."""

    category: ErrorCategory
    message: str
    action: GuidanceAction
    severity: Severity
    retryable: bool

    def __post_init__(self) -> None:
        """Validate invariants for type safety."""
        _require(
            condition=isinstance(self.message, str),
            message="must be str",
            field_name="message",
            exc=TypeError,
        )
        _require(
            condition=isinstance(self.retryable, bool),
            message="must be bool",
            field_name="retryable",
            exc=TypeError,
        )


# --- Entity contract ---


@typing.runtime_checkable
class EntitySnapshot(typing.Protocol):
    """Anything that can be deleted: an identifier plus a display label.

    Implementations may also carry a ``created_at`` recency field; when every
    item in the caller's collection has one, rollback reinserts newest-first.
    """

    @property
    def id(self) -> str: ...  # noqa: D102

    @property
    def title(self) -> str: ...  # noqa: D102


type CollectionTransform = Callable[[list[typing.Any]], list[typing.Any]]
type UpdateCallback = Callable[[CollectionTransform], None]


@dataclasses.dataclass(frozen=True, slots=True)
class PendingDeletion:
    """An optimistic delete that has not been confirmed or rolled back."""

    entity_id: str
    snapshot: typing.Any
    rollback_callback: UpdateCallback


# --- Statistics ---


@dataclasses.dataclass(frozen=True, slots=True)
class DeleteAttemptRecord:
    """One terminal delete outcome with its elapsed time."""

    start_time: float
    elapsed_ms: float
    outcome: DeleteOutcome
    error_category: ErrorCategory | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class DeleteStats:
    """Aggregate delete statistics.

    ``success_rate`` keeps the historical shape: a one-decimal percentage
    string when at least one delete was recorded, the integer ``0`` otherwise.
    """

    total_deletes: int
    successful_deletes: int
    failed_deletes: int
    success_rate: str | int
    error_types: Mapping[str, int]
    average_response_time_ms: float
    response_times: tuple[float, ...]

    def __post_init__(self) -> None:
        """Freeze the per-category mapping."""
        object.__setattr__(self, "error_types", _freeze_mapping(self.error_types))


# --- Instrumentation ---


@dataclasses.dataclass(frozen=True, slots=True)
class MemorySnapshot:
    """Best-effort process memory reading, in bytes."""

    used: int
    total: int
    limit: int


@dataclasses.dataclass(slots=True)
class OperationMetric:
    """Timing and memory record for one monitored operation.

    Times are milliseconds on the monitor's clock; ``end_time``, ``duration``
    and ``memory_after`` stay ``None`` until the operation is ended.
    """

    name: str
    start_time: float
    memory_before: MemorySnapshot | None = None
    end_time: float | None = None
    duration: float | None = None
    memory_after: MemorySnapshot | None = None

    @property
    def is_complete(self) -> bool:
        """Whether the operation has been ended."""
        return self.duration is not None

    @property
    def memory_delta(self) -> int | None:
        """Bytes gained between start and end, when both readings exist."""
        if self.memory_before is None or self.memory_after is None:
            return None
        return self.memory_after.used - self.memory_before.used


@dataclasses.dataclass(frozen=True, slots=True)
class OperationStats:
    """Aggregated durations for completed operations sharing a name.

    Durations are milliseconds formatted to two decimals.
    """

    operation_name: str
    count: int
    avg_duration: str
    min_duration: str
    max_duration: str


__all__ = [  # noqa: RUF022
    "ErrorCategory",
    "GuidanceAction",
    "Severity",
    "DeleteOutcome",
    "ErrorGuidance",
    "EntitySnapshot",
    "CollectionTransform",
    "UpdateCallback",
    "PendingDeletion",
    "DeleteAttemptRecord",
    "DeleteStats",
    "MemorySnapshot",
    "OperationMetric",
    "OperationStats",
]
