"""Tests for amount parsing."""

from decimal import Decimal

import pytest

from tagledger.utils.amount_parser import parse_amount, parse_amount_range


@pytest.mark.parametrize(
    "value, expected",
    [
        ("123.45", Decimal("123.45")),
        ("£1,234.56", Decimal("1234.56")),
        ("$ 5", Decimal("5.00")),
        ("-12.5", Decimal("-12.50")),
        ("(99.99)", Decimal("-99.99")),
        (7, Decimal("7.00")),
        (0.1, Decimal("0.10")),
        (Decimal("1.005"), Decimal("1.00")),
        ("9,999,999,999.99", Decimal("9999999999.99")),
    ],
)
def test_parse_amount(value, expected):
    assert parse_amount(value) == expected


@pytest.mark.parametrize(
    "value", ["", "   ", "abc", "12..3", "NaN", "Infinity", "1e30", "10000000000", Decimal("-1e30")]
)
def test_parse_amount_invalid(value):
    with pytest.raises(ValueError):
        parse_amount(value)


def test_parse_amount_range():
    assert parse_amount_range("10-50") == (Decimal("10.00"), Decimal("50.00"))
    assert parse_amount_range(":-50") == (None, Decimal("50.00"))
    assert parse_amount_range("10.5-:") == (Decimal("10.50"), None)


@pytest.mark.parametrize("value", ["50", "50-10", "a-b"])
def test_parse_amount_range_invalid(value):
    with pytest.raises(ValueError):
        parse_amount_range(value)
