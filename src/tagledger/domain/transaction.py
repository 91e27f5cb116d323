"""Transaction domain service."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from tagledger.database.base import Database
from tagledger.domain.entities import Transaction as TransactionEntity, TransactionType
from tagledger.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    account_name_collision,
    negative_amount,
    transaction_not_found,
)
from tagledger.domain.tagging import TagAssignmentMaintainer
from tagledger.utils.amount_parser import parse_amount
from tagledger.utils.date_parser import parse_date

logger = logging.getLogger(__name__)

AmountInput = Union[str, int, float, Decimal]


def validate_amount(field: str, value: AmountInput) -> Decimal:
    """Parse an amount and reject negative values.

    Raises:
        ValidationError: If the amount is unparsable or negative
    """
    try:
        amount = parse_amount(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {field}: {e}") from e
    if amount < 0:
        raise ValidationError(negative_amount(field, value))
    return amount


def validate_date(field: str, value: Union[str, date]) -> date:
    """Parse a date, converting parse failures to ValidationError."""
    try:
        return parse_date(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {field}: {e}") from e


class TransactionService:
    """Service for inserting and re-tagging transactions."""

    def __init__(self, db: Database, maintainer: Optional[TagAssignmentMaintainer] = None):
        """Initialize transaction service.

        Args:
            db: Database instance
            maintainer: Tag assignment maintainer; one is created if omitted
        """
        self.db = db
        self.maintainer = maintainer or TagAssignmentMaintainer(db)

    def insert_transaction(
        self,
        account: str,
        posted_date: Union[str, date],
        description: str,
        debit_amount: AmountInput,
        credit_amount: AmountInput,
        balance: AmountInput,
        transaction_type: Union[str, TransactionType],
        currency: str,
    ) -> int:
        """Insert a transaction and tag it.

        Inserting a row identical to an existing one is not an error: the
        existing transaction's ID is returned and nothing is written.

        Args:
            account: Account name; unknown names create an account
            posted_date: Posting date
            description: Bank description, may be empty
            debit_amount: Amount debited, not negative
            credit_amount: Amount credited, not negative
            balance: Account balance after the transaction
            transaction_type: "Debit", "Credit" or "Direct Debit"
            currency: Currency code

        Returns:
            Transaction ID

        Raises:
            ValidationError: If any field is invalid
            ConflictError: If the account name is already used as an alias
        """
        with self.db.command("insert transaction"):
            transaction_id, _ = self.insert_within_command(
                account=account,
                posted_date=posted_date,
                description=description,
                debit_amount=debit_amount,
                credit_amount=credit_amount,
                balance=balance,
                transaction_type=transaction_type,
                currency=currency,
            )
        return transaction_id

    def insert_within_command(
        self,
        account: str,
        posted_date: Union[str, date],
        description: str,
        debit_amount: AmountInput,
        credit_amount: AmountInput,
        balance: AmountInput,
        transaction_type: Union[str, TransactionType],
        currency: str,
    ) -> tuple[int, bool]:
        """Insert a transaction as part of an already open command.

        Returns:
            Tuple of (transaction ID, whether a new row was created)
        """
        if not account or not account.strip():
            raise ValidationError("Account must not be empty")
        if not currency or not currency.strip():
            raise ValidationError("Currency must not be empty")
        if description is None:
            raise ValidationError("Description must be a string")
        try:
            txn_type = TransactionType.parse(transaction_type)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        values = dict(
            posted_date=validate_date("posted date", posted_date),
            description=description,
            debit_amount=validate_amount("debit amount", debit_amount),
            credit_amount=validate_amount("credit amount", credit_amount),
            balance=self._parse_balance(balance),
            transaction_type=txn_type,
            currency=currency.strip(),
        )

        account_name = account.strip()
        accounts = self.db.list_accounts()
        existing_account = next((a for a in accounts if a.name == account_name), None)
        if existing_account is not None:
            account_id = existing_account.id
        elif any(a.alias == account_name for a in accounts):
            raise ConflictError(account_name_collision(account_name))
        else:
            logger.info("Creating account '%s'", account_name)
            account_id = self.db.create_account(account_name)

        existing_id = self.db.find_transaction(account_id=account_id, **values)
        if existing_id is not None:
            logger.debug("Transaction already stored as %d", existing_id)
            return existing_id, False

        transaction_id = self.db.create_transaction(account_id=account_id, **values)
        self.maintainer.transaction_changed(transaction_id)
        return transaction_id, True

    @staticmethod
    def _parse_balance(balance: AmountInput) -> Decimal:
        try:
            return parse_amount(balance)
        except ValueError as e:
            raise ValidationError(f"Invalid balance: {e}") from e

    def touch_transaction(self, transaction_id: int) -> None:
        """Re-evaluate every tag rule against a stored transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        with self.db.command("touch transaction"):
            if self.db.get_transaction(transaction_id) is None:
                raise NotFoundError(transaction_not_found(transaction_id))
            self.maintainer.transaction_changed(transaction_id)

    def get_transaction(self, transaction_id: int) -> Optional[TransactionEntity]:
        """Get transaction by ID.

        Args:
            transaction_id: Transaction ID

        Returns:
            Transaction entity or None if not found
        """
        return self.db.get_transaction(transaction_id)

    def list_transactions(self) -> list[TransactionEntity]:
        """List all transactions, ordered by ID."""
        return self.db.list_transactions()

    def count_transactions(self) -> int:
        """Count all stored transactions."""
        return self.db.count_transactions()
