"""Undo domain service."""

import logging
from typing import Optional

from tagledger.database.base import Database
from tagledger.domain.entities import UndoStep

logger = logging.getLogger(__name__)


class UndoService:
    """Service exposing the undo history."""

    def __init__(self, db: Database):
        """Initialize undo service.

        Args:
            db: Database instance
        """
        self.db = db

    def last_step(self) -> Optional[str]:
        """Name of the command ``undo()`` would revert, or None."""
        steps = self.db.list_undo_steps()
        return steps[0].name if steps else None

    def list_steps(self) -> list[UndoStep]:
        """Undo history, newest first."""
        return self.db.list_undo_steps()

    def undo(self) -> Optional[str]:
        """Revert the most recent command.

        Returns:
            Name of the undone command, or None if there is nothing to undo

        Raises:
            IntegrityError: If the command can no longer be reverted. The
                store is unchanged and the step stays in the history.
        """
        name = self.db.undo_last_step()
        if name is None:
            logger.debug("Nothing to undo")
        return name
