"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
from typing import Optional, Union
import re

CENTS = Decimal("0.01")
# Amounts are stored as NUMERIC(12, 2)
MAX_AMOUNT = Decimal("9999999999.99")
_OPEN_BOUND = ":"


def parse_amount(amount_str: Union[str, int, float, Decimal]) -> Decimal:
    """Parse an amount into a Decimal rounded to cents.

    Handles various formats:
    - "123.45"
    - "£123.45"
    - "-123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Raises:
        ValueError: If the amount cannot be parsed or does not fit NUMERIC(12, 2)
    """
    if isinstance(amount_str, Decimal):
        amount = amount_str
    elif isinstance(amount_str, (int, float)):
        amount = Decimal(str(amount_str))
    else:
        if not amount_str or not amount_str.strip():
            raise ValueError("Empty amount string")

        text = amount_str.strip()
        is_negative = False
        if text.startswith("(") and text.endswith(")"):
            is_negative = True
            text = text[1:-1]

        # Currency symbols and thousands separators
        text = re.sub(r"[$€£¥,\s]", "", text)

        try:
            amount = Decimal(text)
        except InvalidOperation:
            raise ValueError(f"Could not parse amount '{amount_str}'")
        if is_negative:
            amount = -amount

    if not amount.is_finite():
        raise ValueError(f"Amount must be a finite number (got {amount_str})")
    try:
        amount = amount.quantize(CENTS)
    except InvalidOperation:
        raise ValueError(f"Amount {amount_str} is out of range (at most {MAX_AMOUNT})")
    if abs(amount) > MAX_AMOUNT:
        raise ValueError(f"Amount {amount_str} is out of range (at most {MAX_AMOUNT})")
    return amount


def parse_amount_range(amount_range: str) -> tuple[Optional[Decimal], Optional[Decimal]]:
    """Parse "LO-HI" into a ``[lo, hi)`` amount range.

    Either side may be ":" to leave it open, as in ":-50" or "50-:"; an open
    side is returned as None.

    Raises:
        ValueError: If the range is malformed or its bounds are reversed
    """
    parts = amount_range.strip().split("-", 1)
    if len(parts) != 2:
        raise ValueError(
            f"Could not parse amount range '{amount_range}': use 'min-max', "
            "with ':' for an open side"
        )

    bounds = []
    for part in parts:
        part = part.strip()
        bounds.append(None if part == _OPEN_BOUND else parse_amount(part))

    low, high = bounds
    if low is not None and high is not None and low > high:
        raise ValueError(f"Amount range '{amount_range}' is in the wrong order")
    return (low, high)
