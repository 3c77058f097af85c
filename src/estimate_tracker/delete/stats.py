"""In-memory statistics for delete attempts."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable
import time

from estimate_tracker.core.types import (
    DeleteAttemptRecord,
    DeleteOutcome,
    DeleteStats,
)

from .classifier import classify_error


class DeleteStatisticsCollector:
    """Counts delete outcomes and keeps response-time samples.

    ``start()`` returns a timestamp that the caller threads through to the
    matching ``record_*`` call, so concurrent deletes never share state.
    The average response time covers only the most recent ``window`` samples.
    """

    def __init__(
        self,
        window: int = 100,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Create an empty collector.

        Args:
            window: Number of recent samples averaged by ``get_stats``.
            clock: Seconds-based monotonic clock.
        """
        if window < 1:
            raise ValueError("window must be >= 1")
        self.window = window
        self._clock = clock
        self.reset()

    def reset(self) -> None:
        """Zero every counter and drop the sample history."""
        self._total = 0
        self._successes = 0
        self._failures = 0
        self._error_types: Counter[str] = Counter()
        self._records: list[DeleteAttemptRecord] = []

    def start(self) -> float:
        """Return the current time in milliseconds."""
        return self._clock() * 1000

    def _elapsed(self, start_timestamp: float) -> float:
        return self.start() - start_timestamp

    def record_success(self, start_timestamp: float) -> DeleteAttemptRecord:
        """Record a successful delete that began at ``start_timestamp``."""
        record = DeleteAttemptRecord(
            start_time=start_timestamp,
            elapsed_ms=self._elapsed(start_timestamp),
            outcome=DeleteOutcome.SUCCESS,
        )
        self._total += 1
        self._successes += 1
        self._records.append(record)
        return record

    def record_failure(
        self, start_timestamp: float, error: BaseException | None
    ) -> DeleteAttemptRecord:
        """Record a failed delete and count it under the error's category."""
        category = classify_error(error)
        record = DeleteAttemptRecord(
            start_time=start_timestamp,
            elapsed_ms=self._elapsed(start_timestamp),
            outcome=DeleteOutcome.FAILURE,
            error_category=category,
        )
        self._total += 1
        self._failures += 1
        self._error_types[category.value] += 1
        self._records.append(record)
        return record

    @property
    def records(self) -> tuple[DeleteAttemptRecord, ...]:
        """Every recorded outcome in call order."""
        return tuple(self._records)

    def get_stats(self) -> DeleteStats:
        """Snapshot the counters and the windowed average response time."""
        response_times = tuple(r.elapsed_ms for r in self._records)
        recent = response_times[-self.window :]
        average = sum(recent) / len(recent) if recent else 0.0
        success_rate: str | int = (
            f"{self._successes / self._total * 100:.1f}" if self._total > 0 else 0
        )
        return DeleteStats(
            total_deletes=self._total,
            successful_deletes=self._successes,
            failed_deletes=self._failures,
            success_rate=success_rate,
            error_types=dict(self._error_types),
            average_response_time_ms=average,
            response_times=response_times,
        )
