"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Malformed input, rejected before anything is written."""


class NotFoundError(DomainError):
    """Requested entity does not exist. Reported as a no-op."""


class ConflictError(DomainError):
    """Uniqueness violation, such as a duplicate tag rule or alias."""

    def __init__(self, message: str, existing_id: int | None = None):
        super().__init__(message)
        self.existing_id = existing_id


class IntegrityError(DomainError):
    """An undo step can no longer be applied to the current store."""


def account_not_found(account: str) -> str:
    """Return message for an unknown account name or alias."""
    return f"Account or alias '{account}' not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def tag_rule_not_found(tag_rule_id: int) -> str:
    """Return message for missing tag rule."""
    return f"Tag rule {tag_rule_id} not found"


def duplicate_tag_rule(tag_rule_id: int) -> str:
    """Return message for a tag rule whose attributes already exist."""
    return f"Tag rule {tag_rule_id} already matches these parameters"


def alias_collision(alias: str) -> str:
    """Return message when an alias clashes with a name or another alias."""
    return f"Alias '{alias}' already exists as an account name or alias"


def negative_amount(field: str, value) -> str:
    """Return message for an amount below zero."""
    return f"{field} must not be negative (got {value})"


def cannot_undo(step_name: str, reason: str) -> str:
    """Return message when an undo step fails to apply."""
    return f"Cannot undo '{step_name}': {reason}"


def account_name_collision(account: str) -> str:
    """Return message when a new account name equals an existing alias."""
    return f"Account name '{account}' already exists as an alias"
