"""Account domain service."""

import logging
from typing import Optional

from tagledger.database.base import Database
from tagledger.domain.entities import Account as AccountEntity
from tagledger.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    account_not_found,
    alias_collision,
)

logger = logging.getLogger(__name__)


class AccountService:
    """Service for account selection and aliases."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def list_accounts(self) -> list[AccountEntity]:
        """List all accounts.

        Returns:
            List of account entities, ordered by name
        """
        return self.db.list_accounts()

    def resolve(self, name_or_alias: str) -> AccountEntity:
        """Find an account by name or alias.

        Raises:
            ValidationError: If no account has this name or alias
        """
        account = self.db.find_account(name_or_alias)
        if account is None:
            raise ValidationError(account_not_found(name_or_alias))
        return account

    def selected_accounts(self) -> list[AccountEntity]:
        """Accounts forming the default query scope."""
        return [account for account in self.db.list_accounts() if account.selected]

    def select(self, name_or_alias: str) -> None:
        """Add an account to the default query scope."""
        with self.db.command("select account"):
            account = self.resolve(name_or_alias)
            if not account.selected:
                self.db.update_account(account.id, selected=True)

    def unselect(self, name_or_alias: Optional[str] = None) -> None:
        """Remove one account, or every account, from the default query scope."""
        with self.db.command("unselect account"):
            if name_or_alias is None:
                accounts = self.selected_accounts()
            else:
                accounts = [self.resolve(name_or_alias)]
            for account in accounts:
                if account.selected:
                    self.db.update_account(account.id, selected=False)

    def set_alias(self, name_or_alias: str, alias: str) -> None:
        """Give an account an alias, replacing any previous one.

        Raises:
            ValidationError: If the account doesn't exist or alias is empty
            ConflictError: If the alias equals any account name or another
                account's alias
        """
        alias = (alias or "").strip()
        if not alias:
            raise ValidationError("Alias must not be empty")

        with self.db.command("set alias"):
            account = self.resolve(name_or_alias)
            for other in self.db.list_accounts():
                if other.name == alias or (other.id != account.id and other.alias == alias):
                    raise ConflictError(alias_collision(alias))
            if account.alias != alias:
                self.db.update_account(account.id, alias=alias)
        logger.info("Account '%s' is now known as '%s'", account.name, alias)

    def delete_alias(self, alias: str) -> None:
        """Remove an alias.

        Raises:
            NotFoundError: If no account has this alias
        """
        with self.db.command("delete alias"):
            for account in self.db.list_accounts():
                if account.alias == alias:
                    self.db.update_account(account.id, clear_alias=True)
                    return
            raise NotFoundError(f"Alias '{alias}' not found")
