"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

# Import entities directly to avoid circular import through domain/__init__.py
from tagledger.domain.entities import (
    Account,
    TagAssignment,
    TagRule,
    Transaction,
    TransactionType,
    UndoStep,
)


class Database(ABC):
    """Abstract database interface for tagledger.

    Writes made inside ``command()`` are recorded in the undo log and
    committed together when the block exits.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Run pending migrations and prepare the undo log."""
        pass

    @abstractmethod
    def command(self, name: str) -> AbstractContextManager[None]:
        """Open an atomic, undoable command named ``name``."""
        pass

    # Account operations
    @abstractmethod
    def create_account(self, name: str) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def find_account(self, name_or_alias: str) -> Optional[Account]:
        """Get account whose name or alias equals ``name_or_alias``."""
        pass

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """List all accounts."""
        pass

    @abstractmethod
    def update_account(
        self,
        account_id: int,
        alias: Optional[str] = None,
        selected: Optional[bool] = None,
        clear_alias: bool = False,
    ) -> None:
        """Update account alias and/or selection."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
        self,
        account_id: int,
        posted_date: date,
        description: str,
        debit_amount: Decimal,
        credit_amount: Decimal,
        balance: Decimal,
        transaction_type: TransactionType,
        currency: str,
    ) -> int:
        """Create a transaction. Returns transaction ID."""
        pass

    @abstractmethod
    def find_transaction(
        self,
        account_id: int,
        posted_date: date,
        description: str,
        debit_amount: Decimal,
        credit_amount: Decimal,
        balance: Decimal,
        transaction_type: TransactionType,
        currency: str,
    ) -> Optional[int]:
        """Return the ID of the transaction with exactly these values, if any."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        transaction_ids: Optional[Iterable[int]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        description_contains: Optional[str] = None,
        amount_min: Optional[Decimal] = None,
        amount_max: Optional[Decimal] = None,
        account_ids: Optional[Iterable[int]] = None,
        transaction_types: Optional[Iterable[TransactionType]] = None,
    ) -> list[Transaction]:
        """List transactions with optional filters, ordered by ID."""
        pass

    @abstractmethod
    def count_transactions(self) -> int:
        """Count all transactions."""
        pass

    # Tag rule operations
    @abstractmethod
    def create_tag_rule(
        self,
        tag: str,
        note: str,
        transaction_id: Optional[int] = None,
        description_contains: Optional[str] = None,
        transaction_type: Optional[TransactionType] = None,
        amount_min: Optional[Decimal] = None,
        amount_max: Optional[Decimal] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> int:
        """Create a tag rule. Returns tag rule ID."""
        pass

    @abstractmethod
    def find_tag_rule(
        self,
        tag: str,
        transaction_id: Optional[int] = None,
        description_contains: Optional[str] = None,
        transaction_type: Optional[TransactionType] = None,
        amount_min: Optional[Decimal] = None,
        amount_max: Optional[Decimal] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> Optional[int]:
        """Return the ID of the tag rule with this tag and predicates, if any.

        Unset predicates only match unset predicates. Notes are ignored.
        """
        pass

    @abstractmethod
    def get_tag_rule(self, tag_rule_id: int) -> Optional[TagRule]:
        """Get tag rule by ID."""
        pass

    @abstractmethod
    def list_tag_rules(self) -> list[TagRule]:
        """List all tag rules, ordered by ID."""
        pass

    @abstractmethod
    def delete_tag_rule(self, tag_rule_id: int) -> None:
        """Delete a tag rule. Its assignments must already be gone."""
        pass

    # Tag assignment operations
    @abstractmethod
    def list_assignments(
        self,
        transaction_ids: Optional[Iterable[int]] = None,
        tag_rule_id: Optional[int] = None,
    ) -> list[TagAssignment]:
        """List assignments, optionally restricted to transactions or a rule."""
        pass

    @abstractmethod
    def add_assignment(self, transaction_id: int, tag_rule_id: int) -> None:
        """Assign a rule to a transaction."""
        pass

    @abstractmethod
    def remove_assignment(self, transaction_id: int, tag_rule_id: int) -> None:
        """Remove a rule assignment from a transaction."""
        pass

    @abstractmethod
    def get_tags_by_transaction(
        self, transaction_ids: Iterable[int]
    ) -> dict[int, set[str]]:
        """Map transaction IDs to the distinct tag labels assigned to them."""
        pass

    @abstractmethod
    def delete_all(self) -> int:
        """Delete every account, transaction, tag rule and assignment.

        Returns:
            Number of transactions deleted
        """
        pass

    # Undo operations
    @abstractmethod
    def list_undo_steps(self) -> list[UndoStep]:
        """List undo steps, newest first."""
        pass

    @abstractmethod
    def undo_last_step(self) -> Optional[str]:
        """Revert the newest undo step. Returns its name, or None if empty."""
        pass

    @abstractmethod
    def clear_undo_steps(self) -> None:
        """Discard the whole undo history."""
        pass
