"""Utility functions for tagledger."""

from tagledger.utils.amount_parser import parse_amount, parse_amount_range
from tagledger.utils.date_parser import get_date_range, parse_date, parse_period

__all__ = [
    "parse_amount",
    "parse_amount_range",
    "get_date_range",
    "parse_date",
    "parse_period",
]
