"""Bounded exponential-backoff retry around a caller-supplied delete."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging

from .policy import DeleteErrorPolicy

logger = logging.getLogger(__name__)

type DeleteOperation[T] = Callable[[str], Awaitable[T]]
type RetryHook = Callable[[str, int, float, Exception], None]


class RetryPolicy:
    """Retries retryable delete failures with doubling delays.

    With the defaults (``max_retries=3``, ``base_delay_ms=1000``) a delete is
    attempted at most four times, sleeping 1s, 2s and 4s between attempts.
    Retry eligibility is re-evaluated on every failure, so a network error
    followed by a permission error stops at the permission error.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay_ms: float = 1000,
        *,
        policy: DeleteErrorPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        on_retry: RetryHook | None = None,
    ) -> None:
        """Configure the retry bound and backoff.

        Args:
            max_retries: Retries allowed after the initial attempt.
            base_delay_ms: Delay before the first retry; doubles each retry.
            policy: Guidance table deciding which errors are retryable.
            sleep: Coroutine function taking seconds (``asyncio.sleep``).
            on_retry: Called as ``(entity_id, retry_number, delay_ms, error)``
                before each backoff sleep.
        """
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if base_delay_ms < 0:
            raise ValueError("base_delay_ms must be >= 0")
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self._policy = policy or DeleteErrorPolicy()
        self._sleep = sleep or asyncio.sleep
        self._on_retry = on_retry

    def delay_for(self, attempt: int) -> float:
        """Backoff in milliseconds after the zero-based ``attempt`` failed."""
        return self.base_delay_ms * (2**attempt)

    async def execute[T](self, delete_operation: DeleteOperation[T], entity_id: str) -> T:
        """Run ``delete_operation(entity_id)`` with retries.

        Any result, falsy ones included, is returned as-is; interpreting it is
        the caller's job. The last error propagates unchanged once it is not
        retryable or the retry bound is reached.
        """
        attempt = 0
        while True:
            try:
                return await delete_operation(entity_id)
            except Exception as error:
                if not self._policy.is_retryable(error) or attempt >= self.max_retries:
                    raise
                delay_ms = self.delay_for(attempt)
                logger.warning(
                    "Delete retry %d/%d for %s in %.0fms: %s",
                    attempt + 1,
                    self.max_retries,
                    entity_id,
                    delay_ms,
                    error,
                )
                if self._on_retry is not None:
                    self._on_retry(entity_id, attempt + 1, delay_ms, error)
                await self._sleep(delay_ms / 1000)
                attempt += 1
