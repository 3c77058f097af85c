"""Operation timing with best-effort memory readings.

Warnings raised here are observational: slow deletes and large memory growth
are logged, never raised.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
import logging
from random import random
import time
from typing import Any

import psutil

from estimate_tracker.core.types import MemorySnapshot, OperationMetric, OperationStats
from estimate_tracker.telemetry import TelemetryReporter, report_metric, report_timing

logger = logging.getLogger(__name__)

SLOW_DELETE_THRESHOLD_MS = 1000.0
MEMORY_GROWTH_WARNING_BYTES = 1024 * 1024

type MemoryProbe = Callable[[], MemorySnapshot | None]


def read_process_memory() -> MemorySnapshot | None:
    """Read the current process memory via psutil, or None if unavailable."""
    try:
        info = psutil.Process().memory_info()
        limit = psutil.virtual_memory().total
    except (psutil.Error, OSError, NotImplementedError):
        return None
    return MemorySnapshot(used=info.rss, total=info.vms, limit=limit)


class PerformanceMonitor:
    """Records start/end times and memory for named operations.

    Records are kept until ``clear_metrics`` is called. Operation ids combine
    the name, a wall-clock timestamp and a random suffix; they are unique in
    practice but not guaranteed.
    """

    def __init__(
        self,
        *,
        slow_delete_threshold_ms: float = SLOW_DELETE_THRESHOLD_MS,
        memory_growth_warning_bytes: int = MEMORY_GROWTH_WARNING_BYTES,
        clock: Callable[[], float] = time.perf_counter,
        memory_probe: MemoryProbe = read_process_memory,
        reporters: tuple[TelemetryReporter, ...] = (),
    ) -> None:
        """Create a monitor.

        Args:
            slow_delete_threshold_ms: Duration above which a delete warns.
            memory_growth_warning_bytes: Growth above which any operation warns.
            clock: Seconds-based monotonic clock.
            memory_probe: Returns a memory reading or None.
            reporters: Telemetry reporters receiving completed timings.
        """
        self.slow_delete_threshold_ms = slow_delete_threshold_ms
        self.memory_growth_warning_bytes = memory_growth_warning_bytes
        self._clock = clock
        self._memory_probe = memory_probe
        self._reporters = tuple(reporters)
        self._metrics: dict[str, OperationMetric] = {}

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def start_operation(self, name: str) -> str:
        """Begin timing ``name`` and return the operation id."""
        operation_id = f"{name}-{int(time.time() * 1000)}-{random()}"  # noqa: S311
        self._metrics[operation_id] = OperationMetric(
            name=name,
            start_time=self._now_ms(),
            memory_before=self._memory_probe(),
        )
        return operation_id

    def end_operation(self, operation_id: str) -> OperationMetric | None:
        """Complete the record for ``operation_id``; unknown ids are ignored."""
        metric = self._metrics.get(operation_id)
        if metric is None:
            return None
        end_time = self._now_ms()
        metric.end_time = end_time
        metric.duration = end_time - metric.start_time
        metric.memory_after = self._memory_probe()
        self._check_warnings(metric)
        report_timing(
            self._reporters,
            metric.name,
            metric.duration / 1000,
            memory_delta=metric.memory_delta,
        )
        return metric

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        """Forward a counter or gauge value to the telemetry reporters."""
        report_metric(self._reporters, scope, value, **metadata)

    def _check_warnings(self, metric: OperationMetric) -> None:
        duration = metric.duration or 0.0
        if "delete" in metric.name and duration > self.slow_delete_threshold_ms:
            logger.warning("Slow delete operation: %s - %.2fms", metric.name, duration)
        delta = metric.memory_delta
        if delta is not None and delta > self.memory_growth_warning_bytes:
            logger.warning(
                "Large memory growth: %s - %.2fMB",
                metric.name,
                delta / 1024 / 1024,
            )

    @contextmanager
    def track(self, name: str) -> Iterator[str]:
        """Time the enclosed block as operation ``name``."""
        operation_id = self.start_operation(name)
        try:
            yield operation_id
        finally:
            self.end_operation(operation_id)

    def get_metric(self, operation_id: str) -> OperationMetric | None:
        """Return the record for ``operation_id``, complete or not."""
        return self._metrics.get(operation_id)

    def get_operation_stats(self, name: str) -> OperationStats | None:
        """Aggregate completed operations named ``name``; None if there are none."""
        durations = [
            m.duration
            for m in self._metrics.values()
            if m.name == name and m.duration is not None
        ]
        if not durations:
            return None
        return OperationStats(
            operation_name=name,
            count=len(durations),
            avg_duration=f"{sum(durations) / len(durations):.2f}",
            min_duration=f"{min(durations):.2f}",
            max_duration=f"{max(durations):.2f}",
        )

    def get_all_stats(self) -> list[OperationStats]:
        """Stats for every operation name with at least one completed record."""
        names = dict.fromkeys(m.name for m in self._metrics.values())
        return [
            stats
            for name in names
            if (stats := self.get_operation_stats(name)) is not None
        ]

    def clear_metrics(self) -> None:
        """Drop every record, finished or not."""
        self._metrics.clear()

    def __len__(self) -> int:
        return len(self._metrics)
