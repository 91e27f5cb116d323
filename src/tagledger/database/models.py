"""SQLAlchemy models for the tagledger database.

The tables themselves are created by the versioned migrations in
``tagledger.database.migrations``; these models must stay in step with them.
"""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    CheckConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

AMOUNT = Numeric(12, 2)


class Account(Base):
    """Bank account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    alias = Column(String, nullable=True)
    selected = Column(Boolean, default=False, nullable=False)

    transactions = relationship("Transaction", back_populates="account")


class Transaction(Base):
    """Imported transaction model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    posted_date = Column(Date, nullable=False)
    description = Column(String, nullable=False)
    debit_amount = Column(AMOUNT, nullable=False)
    credit_amount = Column(AMOUNT, nullable=False)
    balance = Column(AMOUNT, nullable=False)
    transaction_type = Column(String, nullable=False)
    currency = Column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "account_id",
            "posted_date",
            "description",
            "debit_amount",
            "credit_amount",
            "balance",
            "transaction_type",
            "currency",
            name="uq_transaction_row",
        ),
        CheckConstraint("debit_amount >= 0", name="ck_debit_non_negative"),
        CheckConstraint("credit_amount >= 0", name="ck_credit_non_negative"),
    )

    account = relationship("Account", back_populates="transactions")


class TagRule(Base):
    """Tag rule model. NULL predicates place no constraint."""

    __tablename__ = "tag_rules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tag = Column(String, nullable=False)
    note = Column(String, nullable=False)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=True)
    description_contains = Column(String, nullable=True)
    transaction_type = Column(String, nullable=True)
    amount_min = Column(AMOUNT, nullable=True)
    amount_max = Column(AMOUNT, nullable=True)
    from_date = Column(Date, nullable=True)
    to_date = Column(Date, nullable=True)


class TransactionTag(Base):
    """Derived transaction to tag rule assignment."""

    __tablename__ = "transactions_tags"

    transaction_id = Column(Integer, ForeignKey("transactions.id"), primary_key=True)
    tag_rule_id = Column(Integer, ForeignKey("tag_rules.id"), primary_key=True)


class UndoStep(Base):
    """One undoable command."""

    __tablename__ = "undo_steps"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    actions = relationship(
        "UndoAction",
        back_populates="step",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="UndoAction.position",
    )


class UndoAction(Base):
    """Inverse of a single row write, replayed in ``position`` order."""

    __tablename__ = "undo_actions"

    id = Column(Integer, primary_key=True)
    undo_step_id = Column(
        Integer, ForeignKey("undo_steps.id", ondelete="CASCADE"), nullable=False
    )
    position = Column(Integer, nullable=False)
    action = Column(String, nullable=False)
    table_name = Column(String, nullable=False)
    row_data = Column(Text, nullable=False)

    step = relationship("UndoStep", back_populates="actions")


# Tables whose writes are recorded in the undo log.
UNDOABLE_TABLES = ("accounts", "transactions", "tag_rules", "transactions_tags")


def create_sqlite_engine(database_url: str) -> Engine:
    """Create an engine with enforced foreign keys and transactional DDL.

    pysqlite's own transaction handling is switched off so that BEGIN is
    emitted by SQLAlchemy for every unit of work, migrations included.
    """
    engine = create_engine(database_url, echo=False)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(connection):
        connection.exec_driver_sql("BEGIN")

    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory bound to an engine."""
    return sessionmaker(bind=engine)
