"""Whole-ledger maintenance."""

import logging

from tagledger.database.base import Database

logger = logging.getLogger(__name__)


class LedgerService:
    """Service for operations on the ledger as a whole."""

    def __init__(self, db: Database):
        """Initialize ledger service.

        Args:
            db: Database instance
        """
        self.db = db

    def reset(self) -> int:
        """Remove all accounts, transactions and tag rules.

        Runs as one undoable "reset" command; an empty ledger records
        nothing.

        Returns:
            Number of transactions removed
        """
        with self.db.command("reset"):
            removed = self.db.delete_all()
        logger.info("Reset ledger, removed %d transaction(s)", removed)
        return removed
