"""Tag rule domain service."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from tagledger.database.base import Database
from tagledger.domain.entities import RULE_TRANSACTION_TYPES, TagRule, TransactionType
from tagledger.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    duplicate_tag_rule,
    tag_rule_not_found,
    transaction_not_found,
)
from tagledger.domain.tagging import TagAssignmentMaintainer
from tagledger.domain.transaction import AmountInput, validate_amount, validate_date

logger = logging.getLogger(__name__)


def describe_rule(
    tag: str,
    transaction_id: Optional[int] = None,
    description_contains: Optional[str] = None,
    transaction_type: Optional[TransactionType] = None,
    amount_min: Optional[Decimal] = None,
    amount_max: Optional[Decimal] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
) -> str:
    """Build the human-readable note stored with a tag rule."""
    conditions = []
    if transaction_id is not None:
        conditions.append(f"its id is {transaction_id}")
    if description_contains is not None:
        conditions.append(f"its description contains '{description_contains}'")
    if amount_min is not None:
        conditions.append(f"its amount is at least {amount_min}")
    if amount_max is not None:
        conditions.append(f"its amount is below {amount_max}")
    if from_date is not None and to_date is not None:
        conditions.append(f"it was posted from {from_date:%Y/%m/%d} to {to_date:%Y/%m/%d}")
    elif from_date is not None:
        conditions.append(f"it was posted on or after {from_date:%Y/%m/%d}")
    elif to_date is not None:
        conditions.append(f"it was posted on or before {to_date:%Y/%m/%d}")

    kind = f"{transaction_type.value.lower()} transaction" if transaction_type else "transaction"
    if not conditions:
        return f"Tag every {kind} as '{tag}'."
    return f"Tag a {kind} as '{tag}' when " + " and ".join(conditions) + "."


class TagRuleService:
    """Service for managing tag rules."""

    def __init__(self, db: Database, maintainer: Optional[TagAssignmentMaintainer] = None):
        """Initialize tag rule service.

        Args:
            db: Database instance
            maintainer: Tag assignment maintainer; one is created if omitted
        """
        self.db = db
        self.maintainer = maintainer or TagAssignmentMaintainer(db)

    def add_tag_rule(
        self,
        tag: str,
        transaction_id: Optional[int] = None,
        description_contains: Optional[str] = None,
        transaction_type: Optional[Union[str, TransactionType]] = None,
        amount_min: Optional[AmountInput] = None,
        amount_max: Optional[AmountInput] = None,
        from_date: Optional[Union[str, date]] = None,
        to_date: Optional[Union[str, date]] = None,
        note: Optional[str] = None,
    ) -> int:
        """Add a tag rule and tag every transaction it matches.

        Args:
            tag: Tag label, "/" separates levels ("travel/athens")
            transaction_id: Pin the rule to one transaction
            description_contains: Case-insensitive description substring
            transaction_type: "Debit" or "Credit"
            amount_min: Inclusive lower amount bound
            amount_max: Exclusive upper amount bound
            from_date: Inclusive first posting date
            to_date: Inclusive last posting date
            note: Human-readable description; generated when omitted

        Returns:
            Tag rule ID

        Raises:
            ValidationError: If the rule is malformed
            ConflictError: If a rule with the same tag and predicates exists
        """
        tag = (tag or "").strip()
        if not tag:
            raise ValidationError("Tag must not be empty")

        rule_type = None
        if transaction_type is not None:
            try:
                rule_type = TransactionType.parse(transaction_type)
            except ValueError as e:
                raise ValidationError(str(e)) from e
            if rule_type not in RULE_TRANSACTION_TYPES:
                raise ValidationError(
                    f"Tag rules match 'Debit' or 'Credit' transactions, not '{rule_type.value}'"
                )

        predicates = dict(
            transaction_id=transaction_id,
            description_contains=description_contains,
            transaction_type=rule_type,
            amount_min=validate_amount("amount_min", amount_min) if amount_min is not None else None,
            amount_max=validate_amount("amount_max", amount_max) if amount_max is not None else None,
            from_date=validate_date("from_date", from_date) if from_date is not None else None,
            to_date=validate_date("to_date", to_date) if to_date is not None else None,
        )
        if (
            predicates["amount_min"] is not None
            and predicates["amount_max"] is not None
            and predicates["amount_min"] >= predicates["amount_max"]
        ):
            raise ValidationError("amount_min must be smaller than amount_max")
        if (
            predicates["from_date"] is not None
            and predicates["to_date"] is not None
            and predicates["from_date"] > predicates["to_date"]
        ):
            raise ValidationError("from_date must not be after to_date")
        if transaction_id is not None and self.db.get_transaction(transaction_id) is None:
            raise ValidationError(transaction_not_found(transaction_id))

        existing_id = self.db.find_tag_rule(tag=tag, **predicates)
        if existing_id is not None:
            raise ConflictError(duplicate_tag_rule(existing_id), existing_id=existing_id)

        if note is None:
            note = describe_rule(tag, **predicates)

        with self.db.command("add tag rule"):
            rule_id = self.db.create_tag_rule(tag=tag, note=note, **predicates)
            rule = self.db.get_tag_rule(rule_id)
            tagged = self.maintainer.rule_added(rule)
        logger.info("Added tag rule %d for '%s' (%d assignment change(s))", rule_id, tag, tagged)
        return rule_id

    def delete_tag_rule(self, tag_rule_id: int) -> None:
        """Delete a tag rule and re-tag the transactions it tagged.

        Raises:
            NotFoundError: If the rule doesn't exist
        """
        with self.db.command("delete tag rule"):
            if self.db.get_tag_rule(tag_rule_id) is None:
                raise NotFoundError(tag_rule_not_found(tag_rule_id))
            affected = self.maintainer.detach_rule(tag_rule_id)
            self.db.delete_tag_rule(tag_rule_id)
            self.maintainer.refresh(affected)
        logger.info("Deleted tag rule %d", tag_rule_id)

    def get_tag_rule(self, tag_rule_id: int) -> Optional[TagRule]:
        """Get tag rule by ID.

        Args:
            tag_rule_id: Tag rule ID

        Returns:
            Tag rule entity or None if not found
        """
        return self.db.get_tag_rule(tag_rule_id)

    def list_tag_rules(self, tag_prefix: Optional[str] = None) -> list[TagRule]:
        """List tag rules, optionally only those whose tag starts with a prefix.

        The prefix comparison ignores case.
        """
        rules = self.db.list_tag_rules()
        if tag_prefix is None:
            return rules
        prefix = tag_prefix.lower()
        return [rule for rule in rules if rule.tag.lower().startswith(prefix)]

    def count_tagged(self, tag_rule_id: int) -> int:
        """Number of transactions a rule currently tags."""
        return len(self.db.list_assignments(tag_rule_id=tag_rule_id))
