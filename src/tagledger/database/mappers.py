"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, including the string storage of
transaction types and the row images kept in the undo log.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Date, DateTime, Numeric, Table, inspect

from tagledger.domain import entities as domain
from tagledger.database.models import (
    Account as ORMAccount,
    Transaction as ORMTransaction,
    TagRule as ORMTagRule,
    TransactionTag as ORMTransactionTag,
    UndoStep as ORMUndoStep,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        alias=orm_account.alias,
        selected=bool(orm_account.selected),
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        account_id=orm_transaction.account_id,
        posted_date=orm_transaction.posted_date,
        description=orm_transaction.description,
        debit_amount=orm_transaction.debit_amount,
        credit_amount=orm_transaction.credit_amount,
        balance=orm_transaction.balance,
        transaction_type=domain.TransactionType(orm_transaction.transaction_type),
        currency=orm_transaction.currency,
    )


def tag_rule_to_domain(orm_rule: ORMTagRule) -> domain.TagRule:
    """Convert SQLAlchemy TagRule model to domain TagRule entity."""
    return domain.TagRule(
        id=orm_rule.id,
        tag=orm_rule.tag,
        note=orm_rule.note,
        transaction_id=orm_rule.transaction_id,
        description_contains=orm_rule.description_contains,
        transaction_type=(
            domain.TransactionType(orm_rule.transaction_type)
            if orm_rule.transaction_type is not None
            else None
        ),
        amount_min=orm_rule.amount_min,
        amount_max=orm_rule.amount_max,
        from_date=orm_rule.from_date,
        to_date=orm_rule.to_date,
    )


def assignment_to_domain(orm_assignment: ORMTransactionTag) -> domain.TagAssignment:
    """Convert SQLAlchemy TransactionTag model to domain TagAssignment."""
    return domain.TagAssignment(
        transaction_id=orm_assignment.transaction_id,
        tag_rule_id=orm_assignment.tag_rule_id,
    )


def undo_step_to_domain(orm_step: ORMUndoStep, action_count: int) -> domain.UndoStep:
    """Convert SQLAlchemy UndoStep model to domain UndoStep entity."""
    return domain.UndoStep(
        id=orm_step.id,
        name=orm_step.name,
        created_at=orm_step.created_at,
        action_count=action_count,
    )


def row_image(orm_object: Any) -> dict[str, Any]:
    """Capture the column values of an ORM object, keyed by column name."""
    mapper = inspect(orm_object).mapper
    return {
        column.key: getattr(orm_object, column.key)
        for column in mapper.column_attrs
    }


def _encode_value(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def encode_row(values: dict[str, Any]) -> str:
    """Serialize a row image for storage in the undo log."""
    return json.dumps(
        {key: _encode_value(value) for key, value in values.items()}, sort_keys=True
    )


def decode_row(table: Table, row_data: str) -> dict[str, Any]:
    """Deserialize a stored row image using the table's column types."""
    values = json.loads(row_data)
    decoded = {}
    for key, value in values.items():
        column_type = table.c[key].type
        if value is None:
            decoded[key] = None
        elif isinstance(column_type, DateTime):
            decoded[key] = datetime.fromisoformat(value)
        elif isinstance(column_type, Date):
            decoded[key] = date.fromisoformat(value)
        elif isinstance(column_type, Numeric):
            decoded[key] = Decimal(value)
        else:
            decoded[key] = value
    return decoded
