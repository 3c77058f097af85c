"""Delete behind a confirmation step."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any

from estimate_tracker.core.types import UpdateCallback

from .orchestrator import DeleteOrchestrator

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class ConfirmationState:
    """Which entity, if any, is awaiting confirmation."""

    is_open: bool = False
    entity_id: str | None = None
    snapshot: Any = None


class ConfirmedDeleteFlow:
    """Holds a delete target until the user confirms it.

    The dialog state closes only when the delete succeeds, so a failed
    delete leaves the target in place for another attempt.
    """

    def __init__(self, orchestrator: DeleteOrchestrator) -> None:
        self.orchestrator = orchestrator
        self.state = ConfirmationState()

    def open(self, entity_id: str, snapshot: Any) -> None:
        """Ask for confirmation to delete ``entity_id``."""
        self.state = ConfirmationState(is_open=True, entity_id=entity_id, snapshot=snapshot)

    def close(self) -> None:
        """Dismiss the confirmation without deleting."""
        self.state = ConfirmationState()

    async def confirm(self, update_callback: UpdateCallback | None = None) -> bool:
        """Delete the pending target; False if there is none or the delete fails."""
        entity_id, snapshot = self.state.entity_id, self.state.snapshot
        if not entity_id or snapshot is None:
            logger.error("No delete target is awaiting confirmation")
            return False

        deleted = await self.orchestrator.execute_delete(
            entity_id, snapshot, update_callback
        )
        if deleted:
            self.close()
        return deleted
