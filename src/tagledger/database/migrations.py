"""Versioned, forward-only schema migrations.

The schema version lives in SQLite's ``PRAGMA user_version``. Each
migration runs in its own transaction together with the version bump, so a
failing migration leaves the database at the previous version.
"""

import logging
from typing import Sequence

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

Migration = tuple[str, tuple[str, ...]]

MIGRATIONS: tuple[Migration, ...] = (
    (
        "001-initial-schema",
        (
            """
            CREATE TABLE accounts (
                id INTEGER PRIMARY KEY,
                name VARCHAR NOT NULL UNIQUE,
                alias VARCHAR,
                selected BOOLEAN NOT NULL DEFAULT 0
            )
            """,
            """
            CREATE TABLE transactions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                account_id INTEGER NOT NULL REFERENCES accounts(id),
                posted_date DATE NOT NULL,
                description VARCHAR NOT NULL,
                debit_amount NUMERIC(12, 2) NOT NULL,
                credit_amount NUMERIC(12, 2) NOT NULL,
                balance NUMERIC(12, 2) NOT NULL,
                transaction_type VARCHAR NOT NULL,
                currency VARCHAR NOT NULL,
                CONSTRAINT uq_transaction_row UNIQUE (
                    account_id,
                    posted_date,
                    description,
                    debit_amount,
                    credit_amount,
                    balance,
                    transaction_type,
                    currency
                ),
                CONSTRAINT ck_debit_non_negative CHECK (debit_amount >= 0),
                CONSTRAINT ck_credit_non_negative CHECK (credit_amount >= 0),
                CONSTRAINT ck_transaction_type
                    CHECK (transaction_type IN ('Debit', 'Credit', 'Direct Debit'))
            )
            """,
            """
            CREATE TABLE tag_rules (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                tag VARCHAR NOT NULL,
                note VARCHAR NOT NULL,
                transaction_id INTEGER REFERENCES transactions(id),
                description_contains VARCHAR,
                transaction_type VARCHAR,
                amount_min NUMERIC(12, 2),
                amount_max NUMERIC(12, 2),
                from_date DATE,
                to_date DATE,
                CONSTRAINT ck_rule_transaction_type
                    CHECK (transaction_type IN ('Debit', 'Credit'))
            )
            """,
            """
            CREATE TABLE transactions_tags (
                transaction_id INTEGER NOT NULL REFERENCES transactions(id),
                tag_rule_id INTEGER NOT NULL REFERENCES tag_rules(id),
                PRIMARY KEY (transaction_id, tag_rule_id)
            )
            """,
        ),
    ),
    (
        "002-undo",
        (
            """
            CREATE TABLE undo_steps (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name VARCHAR NOT NULL,
                created_at DATETIME NOT NULL
            )
            """,
            """
            CREATE TABLE undo_actions (
                id INTEGER PRIMARY KEY,
                undo_step_id INTEGER NOT NULL
                    REFERENCES undo_steps(id) ON DELETE CASCADE,
                position INTEGER NOT NULL,
                action VARCHAR NOT NULL,
                table_name VARCHAR NOT NULL,
                row_data TEXT NOT NULL
            )
            """,
        ),
    ),
    (
        "003-lookup-indexes",
        (
            "CREATE INDEX ix_transactions_tags_tag_rule_id ON transactions_tags (tag_rule_id)",
            "CREATE INDEX ix_transactions_posted_date ON transactions (posted_date)",
            "CREATE INDEX ix_tag_rules_transaction_id ON tag_rules (transaction_id)",
            "CREATE INDEX ix_undo_actions_step ON undo_actions (undo_step_id, position)",
        ),
    ),
)


def get_schema_version(connection: Connection) -> int:
    """Return the schema version recorded in the database (0 when empty)."""
    return connection.execute(text("PRAGMA user_version")).scalar_one()


def run_migrations(engine: Engine, migrations: Sequence[Migration] = MIGRATIONS) -> int:
    """Apply all migrations newer than the current schema version.

    Args:
        engine: Engine bound to the database to migrate
        migrations: Ordered migrations; the version after applying the n-th
            one is n

    Returns:
        Number of migrations applied

    Raises:
        RuntimeError: If a migration fails. Earlier migrations stay applied.
    """
    with engine.connect() as connection:
        current = get_schema_version(connection)
        connection.rollback()

    if current > len(migrations):
        raise RuntimeError(
            f"Database schema version {current} is newer than this program "
            f"supports ({len(migrations)})"
        )

    applied = 0
    for version, (name, statements) in enumerate(migrations, start=1):
        if version <= current:
            continue
        logger.info("Applying migration %s", name)
        try:
            with engine.begin() as connection:
                for statement in statements:
                    connection.execute(text(statement))
                # Version is a trusted integer; PRAGMA does not take parameters.
                connection.execute(text(f"PRAGMA user_version = {version}"))
        except Exception as e:
            raise RuntimeError(f"Migration '{name}' failed: {e}") from e
        applied += 1

    return applied
