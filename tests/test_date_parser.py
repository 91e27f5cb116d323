"""Tests for date and period parsing."""

from datetime import date, datetime, timedelta

import pytest

from tagledger.utils.date_parser import (
    get_date_range,
    last_day_of_month,
    month_end,
    parse_date,
    parse_month,
    parse_period,
)

TODAY = date(2021, 6, 15)


class TestParseDate:
    def test_absolute_formats(self):
        assert parse_date("2024-01-15") == date(2024, 1, 15)
        assert parse_date("2024/01/15") == date(2024, 1, 15)
        assert parse_date("January 15, 2024") == date(2024, 1, 15)

    def test_relative_dates(self):
        assert parse_date("today") == date.today()
        assert parse_date("Yesterday") == date.today() - timedelta(days=1)
        assert parse_date("this month") == date.today().replace(day=1)

    def test_passthrough(self):
        assert parse_date(date(2021, 1, 2)) == date(2021, 1, 2)
        assert parse_date(datetime(2021, 1, 2, 10, 30)) == date(2021, 1, 2)

    @pytest.mark.parametrize("text", ["", "not a date", "2021/13/45"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_date(text)


class TestNamedPeriods:
    @pytest.mark.parametrize(
        "period", ["this-month", "last-month", "this-year", "last-year", "this-week", "last-week"]
    )
    def test_ranges_are_ordered(self, period):
        start, end = get_date_range(period)
        assert start <= end <= date.today()

    def test_last_month_is_a_whole_month(self):
        start, end = get_date_range("last-month")
        assert start.day == 1
        assert end == month_end(start)

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown period"):
            get_date_range("next-month")


class TestParseMonth:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("2021/01", (2021, 1)),
            ("2020-12", (2020, 12)),
            ("03", (2021, 3)),
            ("january", (2021, 1)),
            ("Sep", (2021, 9)),
        ],
    )
    def test_valid(self, text, expected):
        assert parse_month(text, today=TODAY) == expected

    @pytest.mark.parametrize("text", ["2021/13", "2021/1/1", "smarch", "00"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_month(text, today=TODAY)


class TestParsePeriod:
    def test_year(self):
        assert parse_period("2020", today=TODAY) == (date(2020, 1, 1), date(2020, 12, 31))

    def test_month(self):
        assert parse_period("2020/02", today=TODAY) == (date(2020, 2, 1), date(2020, 2, 29))
        assert parse_period("march", today=TODAY) == (date(2021, 3, 1), date(2021, 3, 31))

    def test_date_range(self):
        assert parse_period("2021/01/05-2021/02/01", today=TODAY) == (
            date(2021, 1, 5),
            date(2021, 2, 1),
        )

    def test_month_range(self):
        assert parse_period("january-march", today=TODAY) == (date(2021, 1, 1), date(2021, 3, 31))
        assert parse_period("2020/11-2021/01", today=TODAY) == (
            date(2020, 11, 1),
            date(2021, 1, 31),
        )

    def test_open_sides(self):
        assert parse_period(":-march", today=TODAY) == (None, date(2021, 3, 31))
        assert parse_period("2021/01-:", today=TODAY) == (date(2021, 1, 1), None)
        assert parse_period(":-:", today=TODAY) == (None, None)

    def test_named_period(self):
        assert parse_period("this-year") == get_date_range("this-year")

    def test_reversed(self):
        with pytest.raises(ValueError, match="ends before it starts"):
            parse_period("march-january", today=TODAY)

    @pytest.mark.parametrize("text", ["whenever", "2021/01/01-soon", "2021/02/30-:"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_period(text, today=TODAY)


def test_last_day_of_month():
    assert last_day_of_month(2021, 2) == date(2021, 2, 28)
    assert last_day_of_month(2024, 2) == date(2024, 2, 29)
    assert last_day_of_month(2021, 12) == date(2021, 12, 31)
