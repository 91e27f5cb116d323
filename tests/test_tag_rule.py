"""Tests for TagRuleService."""

from datetime import date
from decimal import Decimal

import pytest

from tagledger.domain.entities import TransactionType
from tagledger.domain.errors import ConflictError, NotFoundError, ValidationError
from tagledger.domain.tag_rule import describe_rule


def test_add_tag_rule_stores_predicates(tag_rule_service):
    rule_id = tag_rule_service.add_tag_rule(
        "travel/athens",
        description_contains="HOTEL",
        transaction_type="debit",
        amount_min="10",
        amount_max="500.5",
        from_date="2021-05-01",
        to_date=date(2021, 5, 14),
    )

    rule = tag_rule_service.get_tag_rule(rule_id)
    assert rule.tag == "travel/athens"
    assert rule.description_contains == "HOTEL"
    assert rule.transaction_type == TransactionType.DEBIT
    assert rule.amount_min == Decimal("10.00")
    assert rule.amount_max == Decimal("500.50")
    assert rule.from_date == date(2021, 5, 1)
    assert rule.to_date == date(2021, 5, 14)
    assert rule.transaction_id is None
    assert not rule.is_pinned


def test_add_tag_rule_generates_note(tag_rule_service):
    rule_id = tag_rule_service.add_tag_rule("bills", description_contains="ELECTRIC")
    note = tag_rule_service.get_tag_rule(rule_id).note
    assert "bills" in note
    assert "ELECTRIC" in note


def test_add_tag_rule_keeps_given_note(tag_rule_service):
    rule_id = tag_rule_service.add_tag_rule("bills", description_contains="GAS", note="Gas bill")
    assert tag_rule_service.get_tag_rule(rule_id).note == "Gas bill"


def test_describe_rule_mentions_every_predicate():
    note = describe_rule(
        "bills",
        transaction_id=3,
        description_contains="GAS",
        transaction_type=TransactionType.CREDIT,
        amount_min=Decimal("1.00"),
        amount_max=Decimal("2.00"),
        from_date=date(2021, 1, 1),
        to_date=date(2021, 12, 31),
    )
    for fragment in ("bills", "credit", "3", "GAS", "1.00", "2.00", "2021/01/01", "2021/12/31"):
        assert fragment in note


def test_duplicate_rule_is_conflict_with_existing_id(tag_rule_service, temp_db):
    rule_id = tag_rule_service.add_tag_rule("bills", description_contains="ELECTRIC")
    steps_before = len(temp_db.list_undo_steps())

    with pytest.raises(ConflictError) as exc_info:
        tag_rule_service.add_tag_rule("bills", description_contains="ELECTRIC", note="Other note")

    assert exc_info.value.existing_id == rule_id
    assert len(tag_rule_service.list_tag_rules()) == 1
    assert len(temp_db.list_undo_steps()) == steps_before


def test_same_predicates_with_other_tag_is_not_duplicate(tag_rule_service):
    tag_rule_service.add_tag_rule("bills", description_contains="ELECTRIC")
    tag_rule_service.add_tag_rule("energy", description_contains="ELECTRIC")
    assert len(tag_rule_service.list_tag_rules()) == 2


def test_unset_and_empty_description_are_different_rules(tag_rule_service):
    tag_rule_service.add_tag_rule("bills", description_contains="", amount_min="1")
    tag_rule_service.add_tag_rule("bills", amount_min="1")
    assert len(tag_rule_service.list_tag_rules()) == 2


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(tag="", description_contains="X"),
        dict(tag="   ", description_contains="X"),
        dict(tag="bills", amount_min="-1"),
        dict(tag="bills", amount_min="10", amount_max="10"),
        dict(tag="bills", amount_min="20", amount_max="10"),
        dict(tag="bills", from_date="2021-02-01", to_date="2021-01-01"),
        dict(tag="bills", from_date="not a date"),
        dict(tag="bills", transaction_type="Direct Debit"),
        dict(tag="bills", transaction_type="Transfer"),
        dict(tag="bills", transaction_id=999),
    ],
)
def test_invalid_rules_are_rejected(tag_rule_service, temp_db, kwargs):
    with pytest.raises(ValidationError):
        tag_rule_service.add_tag_rule(**kwargs)
    assert tag_rule_service.list_tag_rules() == []
    assert temp_db.list_undo_steps() == []


def test_pinned_rule(add_transaction, tag_rule_service):
    txn_id = add_transaction("ELECTRICITY COMPANY", debit="50")
    rule_id = tag_rule_service.add_tag_rule("special", transaction_id=txn_id)
    rule = tag_rule_service.get_tag_rule(rule_id)
    assert rule.is_pinned
    assert tag_rule_service.count_tagged(rule_id) == 1


def test_delete_tag_rule(add_transaction, tag_rule_service, temp_db):
    txn_id = add_transaction("ELECTRICITY COMPANY", debit="50")
    rule_id = tag_rule_service.add_tag_rule("bills", description_contains="ELECTRIC")

    tag_rule_service.delete_tag_rule(rule_id)

    assert tag_rule_service.get_tag_rule(rule_id) is None
    assert temp_db.list_assignments(transaction_ids=[txn_id]) == []


def test_delete_unknown_rule_is_not_found(tag_rule_service, temp_db):
    with pytest.raises(NotFoundError):
        tag_rule_service.delete_tag_rule(42)
    assert temp_db.list_undo_steps() == []


def test_list_tag_rules_by_prefix(tag_rule_service):
    tag_rule_service.add_tag_rule("travel/athens", description_contains="ATHENS")
    tag_rule_service.add_tag_rule("Travel/rome", description_contains="ROME")
    tag_rule_service.add_tag_rule("bills", description_contains="ELECTRIC")

    tags = [rule.tag for rule in tag_rule_service.list_tag_rules(tag_prefix="travel/")]
    assert tags == ["travel/athens", "Travel/rome"]
    assert len(tag_rule_service.list_tag_rules()) == 3


def test_count_tagged(sample_transactions, tag_rule_service):
    rule_id = tag_rule_service.add_tag_rule("debits", transaction_type="Debit")
    # Electricity, grocery and the gym direct debit
    assert tag_rule_service.count_tagged(rule_id) == 3


def test_rule_with_only_a_tag_tags_everything(sample_transactions, tag_rule_service, temp_db):
    rule_id = tag_rule_service.add_tag_rule("everything")

    assert tag_rule_service.get_tag_rule(rule_id).note == "Tag every transaction as 'everything'."
    assert tag_rule_service.count_tagged(rule_id) == len(sample_transactions)

    with pytest.raises(ConflictError):
        tag_rule_service.add_tag_rule("everything")
