"""Tag assignment maintenance.

Assignments are a cache of a pure function of the current transactions and
tag rules: a transaction is tagged by every rule that matches it, except
that rules pinned to a transaction take precedence over general rules. When
any pinned rule matches a transaction, only pinned rules may tag it.

Callers invoke the maintainer inside the same ``db.command()`` as the write
that made assignments stale, so the repair commits (and is undone) with it.
"""

import logging
from collections import defaultdict
from typing import Iterable, Sequence

from tagledger.database.base import Database
from tagledger.domain.entities import TagAssignment, TagRule, Transaction

logger = logging.getLogger(__name__)


def matches(transaction: Transaction, rule: TagRule) -> bool:
    """Check whether ``rule``'s predicates hold for ``transaction``.

    Unset predicates place no constraint. Text predicates are
    case-insensitive substring tests, so a "Debit" rule also matches
    "Direct Debit" transactions. Amounts compare ``max(debit, credit)``
    against ``[amount_min, amount_max)``; dates are inclusive.
    """
    if rule.transaction_id is not None and rule.transaction_id != transaction.id:
        return False
    if (
        rule.transaction_type is not None
        and rule.transaction_type.value.lower() not in transaction.transaction_type.value.lower()
    ):
        return False
    if (
        rule.description_contains is not None
        and rule.description_contains.lower() not in transaction.description.lower()
    ):
        return False

    amount = transaction.amount
    if rule.amount_min is not None and amount < rule.amount_min:
        return False
    if rule.amount_max is not None and amount >= rule.amount_max:
        return False

    if rule.from_date is not None and transaction.posted_date < rule.from_date:
        return False
    if rule.to_date is not None and transaction.posted_date > rule.to_date:
        return False
    return True


def assignments_for(transaction: Transaction, rules: Iterable[TagRule]) -> set[int]:
    """IDs of the rules that should tag ``transaction``, after precedence."""
    matching = [rule for rule in rules if matches(transaction, rule)]
    pinned = {rule.id for rule in matching if rule.is_pinned}
    if pinned:
        return pinned
    return {rule.id for rule in matching}


def compute_assignments(
    transactions: Iterable[Transaction], rules: Sequence[TagRule]
) -> set[TagAssignment]:
    """The complete assignment relation for the given stores."""
    return {
        TagAssignment(transaction_id=txn.id, tag_rule_id=rule_id)
        for txn in transactions
        for rule_id in assignments_for(txn, rules)
    }


class TagAssignmentMaintainer:
    """Keeps stored tag assignments equal to their derived value."""

    def __init__(self, db: Database):
        """Initialize tag assignment maintainer.

        Args:
            db: Database instance
        """
        self.db = db

    def refresh(self, transaction_ids: Iterable[int]) -> int:
        """Recompute the assignments of the given transactions from scratch.

        Returns:
            Number of assignments added or removed
        """
        transaction_ids = set(transaction_ids)
        if not transaction_ids:
            return 0

        rules = self.db.list_tag_rules()
        current: dict[int, set[int]] = defaultdict(set)
        for assignment in self.db.list_assignments(transaction_ids=transaction_ids):
            current[assignment.transaction_id].add(assignment.tag_rule_id)

        changes = 0
        for txn in self.db.list_transactions(transaction_ids=transaction_ids):
            desired = assignments_for(txn, rules)
            existing = current[txn.id]
            for rule_id in sorted(existing - desired):
                self.db.remove_assignment(txn.id, rule_id)
                changes += 1
            for rule_id in sorted(desired - existing):
                self.db.add_assignment(txn.id, rule_id)
                changes += 1

        logger.debug(
            "Refreshed tags of %d transaction(s), %d change(s)", len(transaction_ids), changes
        )
        return changes

    def rule_added(self, rule: TagRule) -> int:
        """Tag the transactions a newly stored rule matches.

        A pinned rule can only affect its own transaction, where it also
        displaces any general rules.
        """
        if rule.is_pinned:
            affected = [rule.transaction_id]
        else:
            candidates = self.db.list_transactions(start_date=rule.from_date, end_date=rule.to_date)
            affected = [txn.id for txn in candidates if matches(txn, rule)]
        logger.debug("Rule %d matches %d transaction(s)", rule.id, len(affected))
        return self.refresh(affected)

    def detach_rule(self, rule_id: int) -> list[int]:
        """Remove every assignment of a rule that is about to be deleted.

        Returns:
            IDs of the transactions the rule tagged. Pass them to
            ``refresh()`` once the rule is gone, since removing a pinned rule
            can unmask general rules.
        """
        assignments = self.db.list_assignments(tag_rule_id=rule_id)
        for assignment in assignments:
            self.db.remove_assignment(assignment.transaction_id, assignment.tag_rule_id)
        return [assignment.transaction_id for assignment in assignments]

    def transaction_changed(self, transaction_id: int) -> int:
        """Re-evaluate all rules for a new or touched transaction."""
        return self.refresh([transaction_id])

    def expected_assignments(self) -> set[TagAssignment]:
        """Derive the full assignment relation without writing anything."""
        return compute_assignments(self.db.list_transactions(), self.db.list_tag_rules())

    def rebuild(self) -> set[TagAssignment]:
        """Recompute every transaction's assignments and repair any drift.

        Returns:
            The assignment relation after the rebuild
        """
        transaction_ids = [txn.id for txn in self.db.list_transactions()]
        changes = self.refresh(transaction_ids)
        if changes:
            logger.info("Rebuild repaired %d tag assignment(s)", changes)
        return set(self.db.list_assignments())
