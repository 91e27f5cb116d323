"""Tests for tag rule matching and tag assignment maintenance."""

from datetime import date
from decimal import Decimal

import pytest

from tagledger.domain.entities import TagAssignment, TagRule, Transaction, TransactionType
from tagledger.domain.tagging import assignments_for, compute_assignments, matches


def make_transaction(**overrides):
    values = dict(
        id=1,
        account_id=1,
        posted_date=date(2021, 1, 15),
        description="ELECTRICITY COMPANY",
        debit_amount=Decimal("50.00"),
        credit_amount=Decimal("0.00"),
        balance=Decimal("100.00"),
        transaction_type=TransactionType.DEBIT,
        currency="GBP",
    )
    values.update(overrides)
    return Transaction(**values)


def make_rule(rule_id=1, tag="bills", **predicates):
    return TagRule(id=rule_id, tag=tag, note="", **predicates)


class TestMatches:
    """Tests for the rule predicate."""

    def test_description_is_case_insensitive_substring(self):
        txn = make_transaction(description="Electricity Company")
        assert matches(txn, make_rule(description_contains="ELECTRIC"))
        assert matches(txn, make_rule(description_contains="company"))
        assert not matches(txn, make_rule(description_contains="GAS"))

    def test_empty_description_substring_is_a_constraint_not_unset(self):
        txn = make_transaction(description="")
        rule = make_rule(description_contains="")
        assert rule.description_contains is not None
        assert matches(txn, rule)
        assert not matches(txn, make_rule(description_contains="x"))

    def test_debit_rule_matches_direct_debit(self):
        rule = make_rule(transaction_type=TransactionType.DEBIT)
        assert matches(make_transaction(transaction_type=TransactionType.DIRECT_DEBIT), rule)
        assert matches(make_transaction(transaction_type=TransactionType.DEBIT), rule)
        assert not matches(make_transaction(transaction_type=TransactionType.CREDIT), rule)

    def test_credit_rule_only_matches_credits(self):
        rule = make_rule(transaction_type=TransactionType.CREDIT)
        assert matches(make_transaction(transaction_type=TransactionType.CREDIT), rule)
        assert not matches(make_transaction(transaction_type=TransactionType.DIRECT_DEBIT), rule)

    def test_amount_range_is_half_open_on_larger_amount(self):
        rule = make_rule(amount_min=Decimal("50"), amount_max=Decimal("100"))
        assert matches(make_transaction(debit_amount=Decimal("50.00")), rule)
        assert matches(make_transaction(debit_amount=Decimal("99.99")), rule)
        assert not matches(make_transaction(debit_amount=Decimal("100.00")), rule)
        assert not matches(make_transaction(debit_amount=Decimal("49.99")), rule)
        credit = make_transaction(debit_amount=Decimal("0"), credit_amount=Decimal("75"))
        assert matches(credit, rule)

    def test_open_amount_bounds(self):
        assert matches(make_transaction(debit_amount=Decimal("0")), make_rule(amount_max=Decimal("1")))
        assert matches(
            make_transaction(debit_amount=Decimal("1000000")), make_rule(amount_min=Decimal("1"))
        )

    def test_dates_are_inclusive(self):
        rule = make_rule(from_date=date(2021, 1, 1), to_date=date(2021, 1, 31))
        assert matches(make_transaction(posted_date=date(2021, 1, 1)), rule)
        assert matches(make_transaction(posted_date=date(2021, 1, 31)), rule)
        assert not matches(make_transaction(posted_date=date(2020, 12, 31)), rule)
        assert not matches(make_transaction(posted_date=date(2021, 2, 1)), rule)

    def test_pinned_rule_only_matches_its_transaction(self):
        rule = make_rule(transaction_id=7)
        assert matches(make_transaction(id=7), rule)
        assert not matches(make_transaction(id=8), rule)

    def test_all_predicates_must_hold(self):
        rule = make_rule(description_contains="ELECTRIC", transaction_type=TransactionType.CREDIT)
        assert not matches(make_transaction(), rule)


class TestAssignmentsFor:
    """Tests for precedence between pinned and general rules."""

    def test_general_rules_all_apply(self):
        rules = [
            make_rule(1, "bills", description_contains="ELECTRIC"),
            make_rule(2, "utilities", description_contains="COMPANY"),
        ]
        assert assignments_for(make_transaction(), rules) == {1, 2}

    def test_pinned_rules_suppress_general_rules(self):
        rules = [
            make_rule(1, "bills", description_contains="ELECTRIC"),
            make_rule(2, "special", transaction_id=1),
            make_rule(3, "one-off", transaction_id=1),
        ]
        assert assignments_for(make_transaction(id=1), rules) == {2, 3}
        assert assignments_for(make_transaction(id=2), rules) == {1}

    def test_pinned_rule_that_does_not_match_does_not_suppress(self):
        rules = [
            make_rule(1, "bills", description_contains="ELECTRIC"),
            make_rule(2, "special", transaction_id=1, description_contains="GAS"),
        ]
        assert assignments_for(make_transaction(id=1), rules) == {1}

    def test_compute_assignments_is_deterministic(self):
        transactions = [make_transaction(id=i) for i in range(1, 4)]
        rules = [make_rule(1, description_contains="ELECTRIC"), make_rule(2, transaction_id=2)]
        first = compute_assignments(transactions, rules)
        assert first == compute_assignments(transactions, rules)
        assert first == {
            TagAssignment(1, 1),
            TagAssignment(2, 2),
            TagAssignment(3, 1),
        }


class TestTagAssignmentMaintainer:
    """Tests for incremental maintenance against the database."""

    def tags_of(self, temp_db, transaction_id):
        return temp_db.get_tags_by_transaction([transaction_id])[transaction_id]

    def test_rule_tags_existing_transaction(self, add_transaction, tag_rule_service, temp_db):
        txn_id = add_transaction("ELECTRICITY COMPANY", debit="50")
        tag_rule_service.add_tag_rule("electricity bill", description_contains="ELECTRIC")
        assert self.tags_of(temp_db, txn_id) == {"electricity bill"}

    def test_new_transaction_is_tagged_by_existing_rule(
        self, add_transaction, tag_rule_service, temp_db
    ):
        tag_rule_service.add_tag_rule("electricity bill", description_contains="ELECTRIC")
        txn_id = add_transaction("ELECTRICITY COMPANY", debit="50")
        assert self.tags_of(temp_db, txn_id) == {"electricity bill"}

    def test_pinned_rule_masks_and_unmasks_general_rule(
        self, add_transaction, tag_rule_service, temp_db
    ):
        tag_rule_service.add_tag_rule("electricity bill", description_contains="ELECTRIC")
        txn_id = add_transaction("ELECTRICITY COMPANY", debit="50")
        other_id = add_transaction("ELECTRICITY COMPANY", debit="60", balance="40")

        pinned_id = tag_rule_service.add_tag_rule("special", transaction_id=txn_id)
        assert self.tags_of(temp_db, txn_id) == {"special"}
        assert self.tags_of(temp_db, other_id) == {"electricity bill"}

        tag_rule_service.delete_tag_rule(pinned_id)
        assert self.tags_of(temp_db, txn_id) == {"electricity bill"}

    def test_general_rule_added_after_pinned_rule_stays_suppressed(
        self, add_transaction, tag_rule_service, temp_db
    ):
        txn_id = add_transaction("ELECTRICITY COMPANY", debit="50")
        tag_rule_service.add_tag_rule("special", transaction_id=txn_id)
        tag_rule_service.add_tag_rule("electricity bill", description_contains="ELECTRIC")
        assert self.tags_of(temp_db, txn_id) == {"special"}

    def test_deleting_general_rule_removes_its_tags(
        self, add_transaction, tag_rule_service, temp_db
    ):
        txn_id = add_transaction("ELECTRICITY COMPANY", debit="50")
        rule_id = tag_rule_service.add_tag_rule("bills", description_contains="ELECTRIC")
        tag_rule_service.add_tag_rule("utilities", description_contains="COMPANY")
        tag_rule_service.delete_tag_rule(rule_id)
        assert self.tags_of(temp_db, txn_id) == {"utilities"}

    def test_rules_with_same_label_are_deduplicated(
        self, add_transaction, tag_rule_service, temp_db
    ):
        txn_id = add_transaction("ELECTRICITY COMPANY", debit="50")
        tag_rule_service.add_tag_rule("bills", description_contains="ELECTRIC")
        tag_rule_service.add_tag_rule("bills", description_contains="COMPANY")
        assert len(temp_db.list_assignments(transaction_ids=[txn_id])) == 2
        assert self.tags_of(temp_db, txn_id) == {"bills"}

    def test_rebuild_is_idempotent(
        self, sample_transactions, tag_rule_service, maintainer, temp_db
    ):
        tag_rule_service.add_tag_rule("bills", transaction_type="Debit", amount_max="60")
        tag_rule_service.add_tag_rule("income", transaction_type="Credit")
        tag_rule_service.add_tag_rule("special", transaction_id=sample_transactions["gym"])

        stored = set(temp_db.list_assignments())
        assert stored == maintainer.expected_assignments()
        assert maintainer.rebuild() == stored
        assert maintainer.rebuild() == stored
        assert temp_db.list_assignments() == sorted(stored)

    def test_rebuild_repairs_drift(self, add_transaction, tag_rule_service, maintainer, temp_db):
        txn_id = add_transaction("ELECTRICITY COMPANY", debit="50")
        rule_id = tag_rule_service.add_tag_rule("bills", description_contains="ELECTRIC")
        temp_db.remove_assignment(txn_id, rule_id)
        assert maintainer.rebuild() == {TagAssignment(txn_id, rule_id)}

    def test_precedence_holds_for_every_transaction(
        self, sample_transactions, tag_rule_service, temp_db
    ):
        tag_rule_service.add_tag_rule("debits", transaction_type="Debit")
        tag_rule_service.add_tag_rule("everything", amount_min="0")
        pinned = sample_transactions["grocery"]
        tag_rule_service.add_tag_rule("food", transaction_id=pinned)
        tag_rule_service.add_tag_rule("weekly shop", transaction_id=pinned)

        tags = temp_db.get_tags_by_transaction(sample_transactions.values())
        assert tags[pinned] == {"food", "weekly shop"}
        assert tags[sample_transactions["gym"]] == {"debits", "everything"}
        assert tags[sample_transactions["salary"]] == {"everything"}


@pytest.mark.parametrize(
    "description,expected",
    [("ELECTRICITY COMPANY", {"electricity bill"}), ("GAS COMPANY", set())],
)
def test_electricity_rule_scenario(add_transaction, tag_rule_service, temp_db, description, expected):
    """Adding a description rule tags only the matching transactions."""
    tag_rule_service.add_tag_rule("electricity bill", description_contains="ELECTRIC")
    txn_id = add_transaction(description, debit="50")
    assert temp_db.get_tags_by_transaction([txn_id])[txn_id] == expected
