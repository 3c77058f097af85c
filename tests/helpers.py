"""Test doubles shared across the suite."""

from collections.abc import Callable
from typing import Any


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


class RecordingSleep:
    """Async sleep double that records requested delays and advances a clock."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.calls: list[float] = []
        self._clock = clock

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self._clock is not None:
            self._clock.advance_ms(seconds * 1000)

    @property
    def delays_ms(self) -> list[float]:
        return [round(s * 1000, 6) for s in self.calls]


class ProjectList:
    """Caller-held collection that applies transforms from the delete core."""

    def __init__(self, projects: list[Any]) -> None:
        self.projects = list(projects)
        self.updates = 0

    def __call__(self, transform: Callable[[list[Any]], list[Any]]) -> None:
        self.updates += 1
        self.projects = transform(self.projects)

    @property
    def ids(self) -> list[str]:
        return [p.id for p in self.projects]


def scripted_delete(*outcomes: Any) -> Callable[[str], Any]:
    """Build an async delete that raises or returns each outcome in turn.

    Exceptions in ``outcomes`` are raised; anything else is returned. The
    last outcome repeats once the script runs out. Calls are recorded on
    the returned function's ``calls`` list.
    """
    calls: list[str] = []

    async def _delete(entity_id: str) -> Any:
        calls.append(entity_id)
        outcome = outcomes[min(len(calls), len(outcomes)) - 1]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    _delete.calls = calls  # type: ignore[attr-defined]
    return _delete
