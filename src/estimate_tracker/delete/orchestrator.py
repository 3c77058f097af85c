"""Delete orchestration: optimistic update, retry, rollback and statistics.

``DeleteOrchestrator.execute_delete`` sequences one delete for one entity:

1. start a ``delete-<id>`` performance operation and track the snapshot
2. mark the id as deleting and clear its previous error
3. remove the entity from caller state optimistically (when enabled)
4. run the caller's delete operation, through ``RetryPolicy`` when enabled
5. confirm on a truthy result, or roll back and record guidance on failure
6. clear the deleting mark no matter what happened

Per-entity state is keyed by id, so deletes of different ids can run
concurrently on one event loop. Two concurrent deletes of the same id are
not excluded; callers should disable the trigger while ``is_deleting`` is
true.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Mapping
import logging
from types import MappingProxyType
from typing import Any, Self

from estimate_tracker.config import FrozenConfig, resolve_config
from estimate_tracker.core.exceptions import DeleteFailedError
from estimate_tracker.core.types import (
    DeleteStats,
    EntitySnapshot,
    ErrorGuidance,
    UpdateCallback,
)
from estimate_tracker.instrumentation.leaks import LeakDetector
from estimate_tracker.instrumentation.listeners import (
    EventEmitter,
    Listener,
    ListenerRegistry,
)
from estimate_tracker.instrumentation.pacing import process_batch
from estimate_tracker.instrumentation.performance import PerformanceMonitor
from estimate_tracker.telemetry import LoggingReporter, TelemetryReporter

from .optimistic import OptimisticStateManager
from .policy import DeleteErrorPolicy
from .retry import RetryPolicy
from .stats import DeleteStatisticsCollector

logger = logging.getLogger(__name__)

# --- Event names (centralized to avoid typos) ---
E_DELETE_STARTED = "delete.started"
E_DELETE_SUCCEEDED = "delete.succeeded"
E_DELETE_FAILED = "delete.failed"
E_DELETE_RETRYING = "delete.retrying"
E_DELETE_ROLLED_BACK = "delete.rolled_back"

# --- Telemetry metric names ---
M_DELETE_OUTCOME = "delete.outcome"

SNAPSHOT_TYPE_TAG = "DeleteProjectData"

type DeleteFunction = Callable[[str], Awaitable[Any]]
type SuccessCallback = Callable[[str, Any], None]
type ErrorCallback = Callable[[str, Exception, ErrorGuidance], None]


def _label(snapshot: Any) -> str:
    return (getattr(snapshot, "title", "") or "") if snapshot is not None else ""


def _require_snapshot(snapshot: Any) -> None:
    if snapshot is not None and not isinstance(snapshot, EntitySnapshot):
        raise TypeError(
            f"Delete snapshots need id and title attributes, got {type(snapshot).__name__}; "
            "convert rows with ProjectRecord.from_row"
        )


class DeleteOrchestrator:
    """Runs deletes with optimistic updates, retries and bookkeeping.

    Every collaborator can be injected; anything not supplied is created
    for this orchestrator alone, so instances never share instrumentation
    state by accident.
    """

    def __init__(
        self,
        delete_operation: DeleteFunction,
        *,
        on_success: SuccessCallback | None = None,
        on_error: ErrorCallback | None = None,
        enable_optimistic_updates: bool = True,
        enable_retry: bool = True,
        max_retries: int = 3,
        base_delay_ms: float = 1000,
        bulk_batch_size: int = 10,
        leak_check_interval_ms: float = 30_000,
        snapshot_type_tag: str = SNAPSHOT_TYPE_TAG,
        optimistic: OptimisticStateManager | None = None,
        retry_policy: RetryPolicy | None = None,
        error_policy: DeleteErrorPolicy | None = None,
        statistics: DeleteStatisticsCollector | None = None,
        performance: PerformanceMonitor | None = None,
        leak_detector: LeakDetector | None = None,
        listeners: ListenerRegistry | None = None,
        events: EventEmitter | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Wire the orchestrator.

        Args:
            delete_operation: ``async (id) -> truthy|falsy``; raises on
                transport, permission and similar errors.
            on_success: Called once as ``(id, snapshot)`` after a delete.
            on_error: Called once as ``(id, error, guidance)`` after a failure.
            enable_optimistic_updates: Remove from caller state before confirmation.
            enable_retry: Route the delete through ``RetryPolicy``.
            max_retries: Retry bound for the default retry policy.
            base_delay_ms: First backoff for the default retry policy.
            bulk_batch_size: Concurrent deletes per batch in bulk deletes.
            leak_check_interval_ms: Interval used by ``start_leak_detection``.
            snapshot_type_tag: Leak-detector tag for in-flight snapshots.
            sleep: Coroutine function taking seconds, for the default retry policy.
        """
        self.delete_operation = delete_operation
        self.on_success = on_success
        self.on_error = on_error
        self.enable_optimistic_updates = enable_optimistic_updates
        self.enable_retry = enable_retry
        self.bulk_batch_size = bulk_batch_size
        self.leak_check_interval_ms = leak_check_interval_ms
        self.snapshot_type_tag = snapshot_type_tag

        self.error_policy = error_policy or DeleteErrorPolicy()
        self.optimistic = optimistic or OptimisticStateManager()
        self.retry_policy = retry_policy or RetryPolicy(
            max_retries,
            base_delay_ms,
            policy=self.error_policy,
            sleep=sleep,
            on_retry=self._emit_retry,
        )
        self.statistics = statistics or DeleteStatisticsCollector()
        self.performance = performance or PerformanceMonitor()
        self.leak_detector = leak_detector or LeakDetector()
        self.listeners = listeners or ListenerRegistry()
        self.events = events or EventEmitter()

        self._deleting: dict[str, bool] = {}  # in-flight ids only
        self._errors: dict[str, ErrorGuidance] = {}

    @classmethod
    def from_config(
        cls,
        delete_operation: DeleteFunction,
        config: FrozenConfig | None = None,
        *,
        reporters: tuple[TelemetryReporter, ...] = (),
        **kwargs: Any,
    ) -> Self:
        """Build an orchestrator from resolved configuration.

        When ``config`` is None it is resolved from the environment and
        project file. Telemetry reporters are attached only when
        ``telemetry_enabled`` is set; a ``LoggingReporter`` is used if none
        are given.
        """
        if config is None:
            config = resolve_config().to_frozen()

        active_reporters: tuple[TelemetryReporter, ...] = ()
        if config.telemetry_enabled:
            active_reporters = tuple(reporters) or (LoggingReporter(),)

        kwargs.setdefault(
            "performance",
            PerformanceMonitor(
                slow_delete_threshold_ms=config.slow_delete_threshold_ms,
                memory_growth_warning_bytes=config.memory_growth_warning_bytes,
                reporters=active_reporters,
            ),
        )
        kwargs.setdefault("leak_detector", LeakDetector(config.leak_warning_threshold))
        kwargs.setdefault(
            "statistics", DeleteStatisticsCollector(window=config.stats_window)
        )
        return cls(
            delete_operation,
            enable_optimistic_updates=config.enable_optimistic_updates,
            enable_retry=config.enable_retry,
            max_retries=config.max_retries,
            base_delay_ms=config.base_delay_ms,
            bulk_batch_size=config.bulk_batch_size,
            leak_check_interval_ms=config.leak_check_interval_ms,
            **kwargs,
        )

    # --- Delete execution ---

    async def execute_delete(
        self,
        entity_id: str,
        snapshot: Any = None,
        update_callback: UpdateCallback | None = None,
    ) -> bool:
        """Delete ``entity_id``; return True on success, False on failure.

        Failures never raise: they store guidance retrievable via
        ``get_error``, record the failure, roll back the optimistic removal
        and call ``on_error``. Bookkeeping happens before the rollback, so an
        exception from ``update_callback`` during rollback propagates with
        the failure already recorded. Cancellation rolls back and propagates.

        ``snapshot`` must satisfy ``EntitySnapshot`` (attribute access to
        ``id`` and ``title``); convert backend rows with
        ``ProjectRecord.from_row`` first.

        Raises:
            TypeError: If ``snapshot`` is not an ``EntitySnapshot``.
        """
        _require_snapshot(snapshot)
        operation_id = self.performance.start_operation(f"delete-{entity_id}")
        if snapshot is not None:
            self.leak_detector.track_object(snapshot, self.snapshot_type_tag)

        self._deleting[entity_id] = True
        self._errors.pop(entity_id, None)
        start = self.statistics.start()
        self.events.emit(E_DELETE_STARTED, entity_id=entity_id)

        try:
            try:
                if (
                    self.enable_optimistic_updates
                    and snapshot is not None
                    and update_callback is not None
                ):
                    self.optimistic.optimistic_delete(
                        entity_id, snapshot, update_callback
                    )
                result = await self._run_delete(entity_id)
                if not result:
                    raise DeleteFailedError(entity_id)
            except asyncio.CancelledError:
                self.performance.end_operation(operation_id)
                self._untrack(snapshot)
                self._rollback(entity_id)
                raise
            except Exception as error:
                self._fail(entity_id, snapshot, error, start, operation_id)
                return False

            self.optimistic.confirm_delete(entity_id)
            self.statistics.record_success(start)
            self.performance.end_operation(operation_id)
            self.performance.record_metric(M_DELETE_OUTCOME, 1, outcome="success")
            self._untrack(snapshot)
            self.events.emit(E_DELETE_SUCCEEDED, entity_id=entity_id, snapshot=snapshot)
            if self.on_success is not None:
                self.on_success(entity_id, snapshot)
            return True
        finally:
            self._deleting.pop(entity_id, None)

    async def _run_delete(self, entity_id: str) -> Any:
        if self.enable_retry:
            return await self.retry_policy.execute(self.delete_operation, entity_id)
        return await self.delete_operation(entity_id)

    def _fail(
        self,
        entity_id: str,
        snapshot: Any,
        error: Exception,
        start: float,
        operation_id: str,
    ) -> None:
        logger.error("Delete of %s failed: %s", entity_id, error, exc_info=error)

        guidance = self.error_policy.resolve(error, _label(snapshot))
        self._errors[entity_id] = guidance
        self.statistics.record_failure(start, error)
        self.performance.end_operation(operation_id)
        self.performance.record_metric(
            M_DELETE_OUTCOME,
            1,
            outcome="failure",
            category=guidance.category.value,
        )
        self._untrack(snapshot)

        try:
            self._rollback(entity_id)
        finally:
            self.events.emit(
                E_DELETE_FAILED, entity_id=entity_id, error=error, guidance=guidance
            )
            if self.on_error is not None:
                self.on_error(entity_id, error, guidance)

    def _rollback(self, entity_id: str) -> None:
        if self.enable_optimistic_updates and self.optimistic.rollback_delete(entity_id):
            self.events.emit(E_DELETE_ROLLED_BACK, entity_id=entity_id)

    def _untrack(self, snapshot: Any) -> None:
        if snapshot is not None:
            self.leak_detector.untrack_object(snapshot)

    def _emit_retry(
        self, entity_id: str, retry: int, delay_ms: float, error: Exception
    ) -> None:
        self.events.emit(
            E_DELETE_RETRYING,
            entity_id=entity_id,
            retry=retry,
            delay_ms=delay_ms,
            error=error,
        )

    async def execute_bulk_delete(
        self,
        snapshots: Iterable[Any],
        update_callback: UpdateCallback | None = None,
        *,
        batch_size: int | None = None,
    ) -> dict[str, bool]:
        """Delete many entities in concurrent batches; map each id to its outcome."""
        items = list(snapshots)
        for snapshot in items:
            _require_snapshot(snapshot)
        outcomes = await process_batch(
            items,
            lambda snapshot: self.execute_delete(snapshot.id, snapshot, update_callback),
            batch_size or self.bulk_batch_size,
        )
        return {
            snapshot.id: outcome
            for snapshot, outcome in zip(items, outcomes, strict=True)
        }

    # --- Per-entity state ---

    def is_deleting(self, entity_id: str) -> bool:
        """Whether a delete of ``entity_id`` is in flight."""
        return self._deleting.get(entity_id, False)

    def get_error(self, entity_id: str) -> ErrorGuidance | None:
        """Guidance from the last failed delete of ``entity_id``, if any."""
        return self._errors.get(entity_id)

    def clear_error(self, entity_id: str) -> None:
        """Forget the stored failure for ``entity_id``."""
        self._errors.pop(entity_id, None)

    def clear_all_errors(self) -> None:
        """Forget every stored failure."""
        self._errors.clear()

    @property
    def errors(self) -> Mapping[str, ErrorGuidance]:
        """Read-only view of stored failures by id."""
        return MappingProxyType(self._errors)

    @property
    def deleting_ids(self) -> tuple[str, ...]:
        """Ids with a delete in flight."""
        return tuple(self._deleting)

    # --- Statistics ---

    def get_stats(self) -> DeleteStats:
        """Aggregate delete statistics."""
        return self.statistics.get_stats()

    def reset_stats(self) -> None:
        """Zero the delete statistics."""
        self.statistics.reset()

    # --- Events and lifecycle ---

    def subscribe(self, event_type: str, listener: Listener) -> bool:
        """Listen for a delete event; duplicate subscriptions are ignored."""
        return self.listeners.add_listener(self.events, event_type, listener)

    def unsubscribe(self, event_type: str, listener: Listener) -> bool:
        """Stop listening; return whether the listener was subscribed."""
        return self.listeners.remove_listener(self.events, event_type, listener)

    def start_leak_detection(self) -> None:
        """Start the periodic leak check at the configured interval."""
        self.leak_detector.start_leak_detection(self.leak_check_interval_ms)

    def close(self) -> None:
        """Tear down without rolling back pending optimistic deletes.

        Subscriptions made through ``subscribe`` are removed and the periodic
        leak check is stopped.
        """
        self.optimistic.clear_all()
        self.listeners.remove_all_listeners()
        self.leak_detector.stop_leak_detection()

    async def __aenter__(self) -> Self:
        return self

    async def aclose(self) -> None:
        """Like ``close``, then wait for the leak-check task to finish."""
        self.close()
        await self.leak_detector.aclose()

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
