"""Advisory leak accounting by per-type reference counts.

This is bookkeeping, not memory analysis. Counts are only accurate when
every ``track_object`` is paired with an ``untrack_object``; a missed
untrack shows up as a false positive. Associations are keyed by object
identity and hold at most a weak reference, so tracking never keeps an
object alive. Nothing is decremented automatically when an object dies.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import dataclasses
import logging
import time
from typing import Any
import weakref

from estimate_tracker.core.exceptions import LeakDetectionError

logger = logging.getLogger(__name__)

LEAK_WARNING_THRESHOLD = 100
DEFAULT_CHECK_INTERVAL_MS = 30_000


@dataclasses.dataclass(slots=True)
class _TrackedReference:
    type_tag: str
    created_at: float
    ref: weakref.ReferenceType[Any] | None

    def refers_to(self, obj: Any) -> bool:
        # Objects without weakref support can only be matched by id.
        return self.ref is None or self.ref() is obj


def _weak(obj: Any) -> weakref.ReferenceType[Any] | None:
    try:
        return weakref.ref(obj)
    except TypeError:
        return None


class LeakDetector:
    """Counts outstanding objects per type tag and warns past a threshold."""

    def __init__(
        self,
        threshold: int = LEAK_WARNING_THRESHOLD,
        *,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Create a detector with no tracked objects.

        Args:
            threshold: A tag whose count exceeds this is reported as a leak.
            sleep: Coroutine function taking seconds, used by the periodic check.
        """
        self.threshold = threshold
        self._sleep = sleep or asyncio.sleep
        self._references: dict[int, _TrackedReference] = {}
        self._counters: dict[str, int] = {}
        self._task: asyncio.Task[None] | None = None
        self._stopping: set[asyncio.Task[None]] = set()

    def track_object(self, obj: Any, type_tag: str) -> None:
        """Count ``obj`` under ``type_tag``.

        Tracking an object that is already tracked moves it to ``type_tag``
        rather than counting it twice.
        """
        key = id(obj)
        existing = self._references.get(key)
        if existing is not None and existing.refers_to(obj):
            self._decrement(existing.type_tag)
        self._references[key] = _TrackedReference(
            type_tag=type_tag, created_at=time.time(), ref=_weak(obj)
        )
        self._counters[type_tag] = self._counters.get(type_tag, 0) + 1

    def untrack_object(self, obj: Any) -> None:
        """Stop counting ``obj``; untracked objects are ignored."""
        key = id(obj)
        existing = self._references.get(key)
        if existing is None or not existing.refers_to(obj):
            return
        del self._references[key]
        self._decrement(existing.type_tag)

    def _decrement(self, type_tag: str) -> None:
        self._counters[type_tag] = max(0, self._counters.get(type_tag, 0) - 1)

    def is_tracked(self, obj: Any) -> bool:
        """Whether ``obj`` is currently counted."""
        existing = self._references.get(id(obj))
        return existing is not None and existing.refers_to(obj)

    def check_for_leaks(self) -> dict[str, int]:
        """Warn about every tag over the threshold and return those counts."""
        leaks = {tag: n for tag, n in self._counters.items() if n > self.threshold}
        for tag, count in leaks.items():
            logger.warning(
                "Potential memory leak: %s - %d objects still tracked", tag, count
            )
        return leaks

    def get_tracking_status(self) -> dict[str, int]:
        """Current count per type tag."""
        return dict(self._counters)

    @property
    def is_running(self) -> bool:
        """Whether the periodic check is active."""
        return self._task is not None and not self._task.done()

    def start_leak_detection(self, interval_ms: float = DEFAULT_CHECK_INTERVAL_MS) -> None:
        """Run ``check_for_leaks`` every ``interval_ms`` on the running loop.

        Any previously started check is stopped first, so at most one timer
        is active per detector.

        Raises:
            LeakDetectionError: If ``interval_ms`` is not positive or no event
                loop is running.
        """
        if interval_ms <= 0:
            raise LeakDetectionError("interval_ms must be positive")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise LeakDetectionError(
                "Leak detection requires a running event loop"
            ) from e
        self.stop_leak_detection()
        self._task = loop.create_task(self._run(interval_ms / 1000))
        logger.debug("Leak detection started (every %.0fms)", interval_ms)

    async def _run(self, interval: float) -> None:
        while True:
            await self._sleep(interval)
            self.check_for_leaks()

    def stop_leak_detection(self) -> None:
        """Cancel the periodic check if one is active."""
        if self._task is not None:
            self._task.cancel()
            self._stopping.add(self._task)
            self._task.add_done_callback(self._stopping.discard)
            self._task = None
            logger.debug("Leak detection stopped")

    async def aclose(self) -> None:
        """Stop the periodic check and wait until every cancelled task has finished."""
        self.stop_leak_detection()
        stopping, self._stopping = self._stopping, set()
        await asyncio.gather(*stopping, return_exceptions=True)
