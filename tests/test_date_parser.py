"""Tests for date parser with relative dates."""

import pytest
from datetime import date, datetime, timedelta, UTC
from dateutil.relativedelta import relativedelta
from ledgerkeep.utils.date_parser import get_date_range, parse_date, parse_datetime


def test_parse_absolute_date():
    assert parse_date("2024-01-15") == date(2024, 1, 15)


def test_parse_simple_relative_dates():
    today = date.today()
    assert parse_date("today") == today
    assert parse_date("Yesterday") == today - timedelta(days=1)
    assert parse_date("tomorrow") == today + timedelta(days=1)


def test_parse_last_month():
    """'last month' is the first day of the previous month."""
    today = date.today()
    assert parse_date("last month") == (today - relativedelta(months=1)).replace(day=1)


def test_parse_last_week():
    """Weeks start on Monday."""
    result = parse_date("last week")
    today = date.today()
    assert result == today - timedelta(days=today.weekday() + 7)
    assert result.weekday() == 0


def test_parse_this_and_last_year():
    today = date.today()
    assert parse_date("this year") == date(today.year, 1, 1)
    assert parse_date("last year") == date(today.year - 1, 1, 1)


def test_parse_last_weekday():
    result = parse_date("last friday")
    today = date.today()
    assert result.weekday() == 4
    assert 1 <= (today - result).days <= 7


def test_parse_invalid_relative():
    with pytest.raises(ValueError):
        parse_date("last invalid")


def test_parse_standard_formats():
    # These should all work via dateutil parser
    assert parse_date("January 15, 2024") == date(2024, 1, 15)
    assert parse_date("15/01/2024") == date(2024, 1, 15)


def test_parse_datetime_naive_is_utc():
    assert parse_datetime("2024-03-01T10:30:00") == datetime(2024, 3, 1, 10, 30, tzinfo=UTC)


def test_parse_datetime_keeps_offset():
    result = parse_datetime("2024-03-01T10:30:00+02:00")
    assert result.utcoffset() == timedelta(hours=2)


def test_parse_datetime_bare_date_is_midnight():
    assert parse_datetime("2024-03-01") == datetime(2024, 3, 1, tzinfo=UTC)


def test_parse_datetime_relative():
    today = date.today()
    assert parse_datetime("today") == datetime(today.year, today.month, today.day, tzinfo=UTC)


def test_parse_datetime_invalid():
    with pytest.raises(ValueError, match="Could not parse timestamp"):
        parse_datetime("not a time")


def test_get_date_range_this_month():
    today = date.today()
    start, end = get_date_range("this-month")
    assert start == date(today.year, today.month, 1)
    assert end == today


def test_get_date_range_this_week():
    today = date.today()
    start, end = get_date_range("this-week")
    assert start == today - timedelta(days=today.weekday())
    assert start.weekday() == 0  # Should be Monday
    assert end == today


def test_get_date_range_last_month():
    today = date.today()
    start, end = get_date_range("last-month")
    assert start == (today - relativedelta(months=1)).replace(day=1)
    # Last day of last month (day before first day of current month)
    assert end == today.replace(day=1) - timedelta(days=1)


def test_get_date_range_last_year():
    today = date.today()
    start, end = get_date_range("last-year")
    assert start == date(today.year - 1, 1, 1)
    assert end == date(today.year - 1, 12, 31)


def test_get_date_range_last_week():
    start, end = get_date_range("last-week")
    assert start.weekday() == 0  # Monday
    assert end.weekday() == 6  # Sunday
    assert (end - start).days == 6


def test_get_date_range_invalid_period():
    with pytest.raises(ValueError, match="Unknown period"):
        get_date_range("invalid-period")
