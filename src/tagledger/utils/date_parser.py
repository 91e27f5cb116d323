"""Date and period parsing utilities."""

import calendar
import re
from datetime import date, datetime, timedelta
from typing import Optional, Union

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

NAMED_PERIODS = ("this-month", "last-month", "this-year", "last-year", "this-week", "last-week")

# "2021/01", "2021-01", "01", "january", "jan"
_MONTH_RE = re.compile(r"^((?P<year>\d{4})[-/])?(?P<month>\d{2}|[A-Za-z]+)$")
_YEAR_RE = re.compile(r"^\d{4}$")
_OPEN_BOUND = ":"


def parse_date(date_str: Union[str, date]) -> date:
    """Parse a date string into a date object.

    Supports absolute dates ("2024-01-15", "2024/01/15", "January 15, 2024")
    and the relative forms "today", "yesterday" and "this/last month, week
    or year" (which resolve to the first day of that period).

    Args:
        date_str: Date string, or an already parsed date

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if isinstance(date_str, datetime):
        return date_str.date()
    if isinstance(date_str, date):
        return date_str

    text = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
    }
    if text in relative_dates:
        return relative_dates[text]

    for prefix in ("this ", "last "):
        if text.startswith(prefix):
            start, _ = get_date_range(f"{prefix.strip()}-{text[len(prefix):]}")
            return start

    if not text:
        raise ValueError("Could not parse date '': empty string")
    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def get_date_range(period: str) -> tuple[date, date]:
    """Get start and end dates for a named period.

    Args:
        period: Period string (this-month, this-year, this-week, last-month, last-year, last-week)

    Returns:
        Tuple of (start_date, end_date) for the specified period

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = date.today()

    if period == "this-month":
        return (today.replace(day=1), today)

    elif period == "this-year":
        return (today.replace(month=1, day=1), today)

    elif period == "this-week":
        return (today - timedelta(days=today.weekday()), today)

    elif period == "last-month":
        start_date = (today - relativedelta(months=1)).replace(day=1)
        # Day before the first of the current month
        end_date = today.replace(day=1) - timedelta(days=1)
        return (start_date, end_date)

    elif period == "last-year":
        start_date = today.replace(month=1, day=1) - relativedelta(years=1)
        end_date = today.replace(month=1, day=1) - timedelta(days=1)
        return (start_date, end_date)

    elif period == "last-week":
        start_date = today - timedelta(days=today.weekday() + 7)
        end_date = start_date + timedelta(days=6)
        return (start_date, end_date)

    else:
        raise ValueError(
            f"Unknown period: '{period}'. Supported periods: {', '.join(NAMED_PERIODS)}"
        )


def first_day_of_month(year: int, month: int) -> date:
    """First day of the given month."""
    return date(year, month, 1)


def last_day_of_month(year: int, month: int) -> date:
    """Last day of the given month."""
    return first_day_of_month(year, month) + relativedelta(months=1) - timedelta(days=1)


def month_end(day: date) -> date:
    """Last day of the month ``day`` falls in."""
    return last_day_of_month(day.year, day.month)


def _month_number(name: str) -> int:
    lowered = name.lower()
    for number in range(1, 13):
        if lowered in (calendar.month_name[number].lower(), calendar.month_abbr[number].lower()):
            return number
    raise ValueError(f"Invalid month '{name}'")


def parse_month(text: str, today: Optional[date] = None) -> tuple[int, int]:
    """Parse month shorthand into ``(year, month)``.

    Accepts "YYYY/MM", "YYYY-MM", "MM" and month names or abbreviations.
    Without a year the current year is used.

    Raises:
        ValueError: If the text is not a month
    """
    match = _MONTH_RE.match(text.strip())
    if match is None:
        raise ValueError(f"Invalid month format '{text}': try YYYY/MM")

    today = today or date.today()
    year = int(match.group("year")) if match.group("year") else today.year
    month_text = match.group("month")
    month = int(month_text) if month_text.isdigit() else _month_number(month_text)
    if not 1 <= month <= 12:
        raise ValueError(f"Month {month} is not in range 1-12")
    return year, month


def _parse_period_bound(part: str, is_start: bool, today: date) -> Optional[date]:
    if part == _OPEN_BOUND:
        return None
    try:
        return datetime.strptime(part, "%Y/%m/%d").date()
    except ValueError:
        pass
    year, month = parse_month(part, today)
    if is_start:
        return first_day_of_month(year, month)
    return last_day_of_month(year, month)


def parse_period(period: str, today: Optional[date] = None) -> tuple[Optional[date], Optional[date]]:
    """Parse a period expression into an inclusive ``(start, end)`` date range.

    Supported forms:
    - Named periods: "this-month", "last-year", ...
    - A year: "2021"
    - A month: "2021/01", "2021-01", "01", "january"
    - A range "LO-HI" of "YYYY/MM/DD" dates or months, e.g.
      "2021/01/05-2021/02/01" or "january-march". ":" leaves a side open,
      as in ":-march" or "2021/01-:"; an open side is returned as None.

    Raises:
        ValueError: If the period cannot be parsed or its bounds are reversed
    """
    text = period.strip()
    today = today or date.today()

    if text.lower() in NAMED_PERIODS:
        return get_date_range(text)

    if _YEAR_RE.match(text):
        year = int(text)
        return (date(year, 1, 1), date(year, 12, 31))

    try:
        year, month = parse_month(text, today)
    except ValueError:
        pass
    else:
        return (first_day_of_month(year, month), last_day_of_month(year, month))

    parts = text.split("-", 1)
    if len(parts) != 2:
        raise ValueError(
            f"Could not parse period '{period}': use a month, a year or a range "
            "such as 'january-march' (':' leaves a side open)"
        )
    try:
        start = _parse_period_bound(parts[0].strip(), True, today)
        end = _parse_period_bound(parts[1].strip(), False, today)
    except ValueError as e:
        raise ValueError(f"Invalid value in period '{period}': {e}")

    if start is not None and end is not None and start > end:
        raise ValueError(f"Period '{period}' ends before it starts")
    return (start, end)
