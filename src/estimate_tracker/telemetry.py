"""Telemetry reporter interfaces.

Reporters receive completed operation timings from the performance monitor.
They are optional: with no reporters configured nothing is forwarded.
"""

from collections import deque
import logging
from typing import Any, Protocol, runtime_checkable

log = logging.getLogger(__name__)


@runtime_checkable
class TelemetryReporter(Protocol):
    """Duck-typed protocol for telemetry reporters."""

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None: ...  # noqa: D102
    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None: ...  # noqa: D102


def report_timing(
    reporters: tuple[TelemetryReporter, ...],
    scope: str,
    duration: float,
    **metadata: Any,
) -> None:
    """Forward a timing to every reporter, logging reporter failures."""
    for reporter in reporters:
        try:
            reporter.record_timing(scope, duration, **metadata)
        except Exception as e:
            log.error(
                "Telemetry reporter '%s' failed: %s",
                type(reporter).__name__,
                e,
                exc_info=True,
            )


def report_metric(
    reporters: tuple[TelemetryReporter, ...],
    scope: str,
    value: Any,
    **metadata: Any,
) -> None:
    """Forward a metric to every reporter, logging reporter failures."""
    for reporter in reporters:
        try:
            reporter.record_metric(scope, value, **metadata)
        except Exception as e:
            log.error(
                "Telemetry reporter '%s' failed: %s",
                type(reporter).__name__,
                e,
                exc_info=True,
            )


class InMemoryReporter:
    """Collects timings and metrics in memory for development use.

    Call ``get_report()`` to render what was collected.
    """

    def __init__(self, max_entries_per_scope: int = 1000):
        self.max_entries = max_entries_per_scope
        self.timings: dict[str, deque[tuple[float, dict[str, Any]]]] = {}
        self.metrics: dict[str, deque[tuple[Any, dict[str, Any]]]] = {}

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        if scope not in self.timings:
            self.timings[scope] = deque(maxlen=self.max_entries)
        self.timings[scope].append((duration, metadata))

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        if scope not in self.metrics:
            self.metrics[scope] = deque(maxlen=self.max_entries)
        self.metrics[scope].append((value, metadata))

    def get_report(self) -> str:
        """Render per-scope call counts and timing totals."""
        lines = ["=== Telemetry Report ===", "", "--- Timings ---"]
        for scope, values in sorted(self.timings.items()):
            durations = [v[0] for v in values]
            avg_time = sum(durations) / len(durations)
            lines.append(
                f"{scope:<40} | "
                f"Calls: {len(durations):<4} | "
                f"Avg: {avg_time:.4f}s | "
                f"Total: {sum(durations):.4f}s",
            )
        if self.metrics:
            lines.append("")
            lines.append("--- Metrics ---")
            for scope, values in sorted(self.metrics.items()):
                total = sum(v[0] for v in values if isinstance(v[0], int | float))
                lines.append(
                    f"{scope:<40} | Count: {len(values):<4} | Total: {total:,.0f}",
                )
        return "\n".join(lines)


class LoggingReporter:
    """Writes every timing and metric to a logger at DEBUG level."""

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or log

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        self._logger.debug("timing %s %.6fs %s", scope, duration, metadata)

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        self._logger.debug("metric %s %r %s", scope, value, metadata)
