"""Optimistic removal of entities ahead of remote confirmation.

The manager never owns the caller's collection. It hands the caller's update
callback a pure transformation (remove-by-id, or reinsert) and the caller
applies it to whatever state it holds.
"""

from __future__ import annotations

from datetime import date, datetime
import logging
from typing import Any

from estimate_tracker.core.types import (
    CollectionTransform,
    PendingDeletion,
    UpdateCallback,
)

logger = logging.getLogger(__name__)


def _recency_key(item: Any, field: str) -> datetime | None:
    value = getattr(item, field, None)
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def _sorted_newest_first(items: list[Any], field: str) -> list[Any]:
    """Order by ``field`` descending when every item carries a usable value."""
    keys = [_recency_key(item, field) for item in items]
    if any(key is None for key in keys):
        return items
    try:
        order = sorted(range(len(items)), key=lambda i: keys[i], reverse=True)
    except TypeError:
        # Mixed naive and aware timestamps cannot be compared.
        logger.debug("Unorderable %s values; keeping insertion order", field)
        return items
    return [items[i] for i in order]


def remove_by_id(entity_id: str) -> CollectionTransform:
    """Build a transform that drops every item whose ``id`` is ``entity_id``.

    Items are matched by attribute, so mapping-shaped rows never match.
    """

    def _remove(items: list[Any]) -> list[Any]:
        return [item for item in items if getattr(item, "id", None) != entity_id]

    return _remove


def reinsert(snapshot: Any, recency_field: str = "created_at") -> CollectionTransform:
    """Build a transform that restores ``snapshot`` unless already present."""
    entity_id = getattr(snapshot, "id", None)

    def _reinsert(items: list[Any]) -> list[Any]:
        if any(getattr(item, "id", None) == entity_id for item in items):
            return items
        return _sorted_newest_first([*items, snapshot], recency_field)

    return _reinsert


class OptimisticStateManager:
    """Tracks pending optimistic deletes and restores them on failure.

    A pending record exists from ``optimistic_delete`` until
    ``confirm_delete`` or ``rollback_delete``. Both of those are no-ops for
    ids that are not pending. A second ``optimistic_delete`` for an id that
    is still pending replaces the first record (last writer wins); the
    replaced rollback callback is discarded and a warning is logged.
    """

    def __init__(self, recency_field: str = "created_at") -> None:
        """Create an empty manager.

        Args:
            recency_field: Attribute used to order reinsertion newest-first.
        """
        self.recency_field = recency_field
        self._pending: dict[str, PendingDeletion] = {}

    def optimistic_delete(
        self, entity_id: str, snapshot: Any, update_callback: UpdateCallback
    ) -> None:
        """Record ``snapshot`` and remove ``entity_id`` from caller state now."""
        if entity_id in self._pending:
            logger.warning(
                "Optimistic delete for %s replaced a pending delete for the same id",
                entity_id,
            )
        self._pending[entity_id] = PendingDeletion(
            entity_id=entity_id,
            snapshot=snapshot,
            rollback_callback=update_callback,
        )
        update_callback(remove_by_id(entity_id))
        logger.debug("Optimistically removed %s", entity_id)

    def confirm_delete(self, entity_id: str) -> None:
        """Discard the pending record for ``entity_id``."""
        if self._pending.pop(entity_id, None) is not None:
            logger.debug("Confirmed delete of %s", entity_id)

    def rollback_delete(self, entity_id: str) -> bool:
        """Reinsert the pending snapshot for ``entity_id`` into caller state.

        Returns:
            True when a pending record existed and was rolled back.
        """
        pending = self._pending.pop(entity_id, None)
        if pending is None:
            return False
        pending.rollback_callback(reinsert(pending.snapshot, self.recency_field))
        logger.debug("Rolled back optimistic delete of %s", entity_id)
        return True

    def clear_all(self) -> None:
        """Abandon every pending record without rolling anything back."""
        self._pending.clear()

    def is_pending(self, entity_id: str) -> bool:
        """Whether ``entity_id`` has an unresolved optimistic delete."""
        return entity_id in self._pending

    def pending_ids(self) -> tuple[str, ...]:
        """Ids with unresolved optimistic deletes, in start order."""
        return tuple(self._pending)

    def __len__(self) -> int:
        return len(self._pending)
