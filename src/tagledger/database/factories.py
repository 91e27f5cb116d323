"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from tagledger.database.sqlalchemy_db import DEFAULT_MAX_UNDO_STEPS, SQLAlchemyDatabase


def create_sqlite_database(
    database_path: Optional[str] = None, max_undo_steps: Optional[int] = None
) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks TAGLEDGER_DB_PATH
            environment variable, then defaults to ~/.tagledger/tagledger.db
        max_undo_steps: Size of the undo history. If None, checks
            TAGLEDGER_MAX_UNDO_STEPS, then defaults to 128

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        # Check environment variable
        database_path = os.environ.get("TAGLEDGER_DB_PATH")

    if database_path is None:
        # Default to ~/.tagledger/tagledger.db
        home = Path.home()
        db_dir = home / ".tagledger"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "tagledger.db")

    if max_undo_steps is None:
        configured = os.environ.get("TAGLEDGER_MAX_UNDO_STEPS")
        max_undo_steps = int(configured) if configured else DEFAULT_MAX_UNDO_STEPS
    if max_undo_steps < 1:
        raise ValueError(f"max_undo_steps must be at least 1 (got {max_undo_steps})")

    database_url = f"sqlite:///{database_path}"
    return SQLAlchemyDatabase(database_url, max_undo_steps=max_undo_steps)
