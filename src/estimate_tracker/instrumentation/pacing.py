"""Pacing helpers: delays, batched concurrency, debounce and throttle."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
import functools
import time
from typing import Any


async def delay(ms: float) -> None:
    """Sleep for ``ms`` milliseconds."""
    await asyncio.sleep(ms / 1000)


async def process_batch[T, R](
    items: Iterable[T],
    processor: Callable[[T], Awaitable[R]],
    batch_size: int = 10,
    delay_ms: float = 0,
    *,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> list[R]:
    """Run ``processor`` over ``items`` in concurrent batches.

    Each batch runs with ``asyncio.gather``; results keep input order. When
    ``delay_ms`` is positive the helper pauses between batches (not after the
    last one). The first exception raised by a processor propagates.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    pending = list(items)
    pause = sleep or asyncio.sleep
    results: list[R] = []
    for start in range(0, len(pending), batch_size):
        batch = pending[start : start + batch_size]
        results.extend(await asyncio.gather(*(processor(item) for item in batch)))
        if delay_ms > 0 and start + batch_size < len(pending):
            await pause(delay_ms / 1000)
    return results


class Debounced:
    """Callable that postpones ``func`` until calls stop for ``wait_ms``.

    With ``immediate=True`` the first call of a burst runs right away and the
    trailing call is dropped. Must be called from inside a running loop.
    """

    def __init__(
        self, func: Callable[..., Any], wait_ms: float, immediate: bool = False
    ) -> None:
        functools.update_wrapper(self, func)
        self._func = func
        self.wait_ms = wait_ms
        self.immediate = immediate
        self._handle: asyncio.TimerHandle | None = None

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        loop = asyncio.get_running_loop()
        call_now = self.immediate and self._handle is None
        self.cancel()

        def later() -> None:
            self._handle = None
            if not self.immediate:
                self._func(*args, **kwargs)

        self._handle = loop.call_later(self.wait_ms / 1000, later)
        if call_now:
            self._func(*args, **kwargs)

    @property
    def pending(self) -> bool:
        """Whether a timer is waiting."""
        return self._handle is not None

    def cancel(self) -> None:
        """Drop any waiting call."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


def debounce(
    func: Callable[..., Any], wait_ms: float, immediate: bool = False
) -> Debounced:
    """Wrap ``func`` so bursts of calls collapse into one."""
    return Debounced(func, wait_ms, immediate)


def throttle(
    func: Callable[..., Any],
    limit_ms: float,
    *,
    clock: Callable[[], float] = time.monotonic,
) -> Callable[..., None]:
    """Wrap ``func`` so it runs at most once per ``limit_ms``; extra calls are dropped."""
    last_run: float | None = None

    @functools.wraps(func)
    def throttled(*args: Any, **kwargs: Any) -> None:
        nonlocal last_run
        now = clock()
        if last_run is not None and (now - last_run) * 1000 < limit_ms:
            return
        last_run = now
        func(*args, **kwargs)

    return throttled
