"""Deduplicated event subscriptions."""

from __future__ import annotations

from collections.abc import Callable
import dataclasses
import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)

type Listener = Callable[..., Any]


class EventTarget(Protocol):
    """Anything listeners can be attached to."""

    def add_listener(self, event_type: str, listener: Listener) -> None: ...  # noqa: D102
    def remove_listener(self, event_type: str, listener: Listener) -> None: ...  # noqa: D102


class EventEmitter:
    """Minimal synchronous event target.

    Listeners run in subscription order with the emitted keyword payload.
    A failing listener is logged and does not stop the others.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def add_listener(self, event_type: str, listener: Listener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def remove_listener(self, event_type: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event_type: str, **payload: Any) -> None:
        """Call every listener for ``event_type``."""
        for listener in tuple(self._listeners.get(event_type, ())):
            try:
                listener(**payload)
            except Exception as e:
                logger.error(
                    "Listener for '%s' failed: %s", event_type, e, exc_info=True
                )

    def listener_count(self, event_type: str | None = None) -> int:
        """Listeners for one event type, or for all of them."""
        if event_type is not None:
            return len(self._listeners.get(event_type, ()))
        return sum(len(v) for v in self._listeners.values())


@dataclasses.dataclass(frozen=True, slots=True)
class _Subscription:
    target: EventTarget
    event_type: str
    listener: Listener


class ListenerRegistry:
    """Adds each (target, event type, listener) subscription at most once.

    Keeps every subscription it made so they can all be removed on teardown.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[tuple[int, str, Listener], _Subscription] = {}

    @staticmethod
    def _key(
        target: EventTarget, event_type: str, listener: Listener
    ) -> tuple[int, str, Listener]:
        return (id(target), event_type, listener)

    def add_listener(
        self, target: EventTarget, event_type: str, listener: Listener
    ) -> bool:
        """Subscribe ``listener`` unless it already is; return whether it was added."""
        key = self._key(target, event_type, listener)
        if key in self._subscriptions:
            return False
        target.add_listener(event_type, listener)
        self._subscriptions[key] = _Subscription(target, event_type, listener)
        logger.debug("Added listener for '%s'", event_type)
        return True

    def remove_listener(
        self, target: EventTarget, event_type: str, listener: Listener
    ) -> bool:
        """Unsubscribe ``listener``; return whether it was subscribed."""
        subscription = self._subscriptions.pop(
            self._key(target, event_type, listener), None
        )
        if subscription is None:
            return False
        target.remove_listener(event_type, listener)
        logger.debug("Removed listener for '%s'", event_type)
        return True

    def remove_all_listeners(self) -> None:
        """Unsubscribe everything this registry added."""
        for subscription in self._subscriptions.values():
            subscription.target.remove_listener(
                subscription.event_type, subscription.listener
            )
        self._subscriptions.clear()

    def listener_count(self) -> int:
        """Number of active subscriptions."""
        return len(self._subscriptions)
