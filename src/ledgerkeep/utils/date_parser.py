"""Date parsing utilities."""

from datetime import date, datetime, timedelta, UTC
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def _relative_date(text: str, today: date) -> date | None:
    """Resolve phrases like "yesterday" or "last month"; None if not relative."""
    simple = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    if text in simple:
        return simple[text]

    word, _, period = text.partition(" ")
    if word not in ("last", "this", "next"):
        return None

    if period == "month":
        first = today.replace(day=1)
        offsets = {"last": -1, "this": 0, "next": 1}
        return first + relativedelta(months=offsets[word])
    if period == "year":
        first = today.replace(month=1, day=1)
        offsets = {"last": -1, "this": 0, "next": 1}
        return first + relativedelta(years=offsets[word])
    if period == "week":
        monday = today - timedelta(days=today.weekday())
        offsets = {"last": -7, "this": 0, "next": 7}
        return monday + timedelta(days=offsets[word])
    if word == "last" and period in WEEKDAYS:
        days_ago = (today.weekday() - WEEKDAYS.index(period)) % 7 or 7
        return today - timedelta(days=days_ago)
    return None


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports various formats including relative dates:
    - Absolute dates: "2024-01-15", "January 15, 2024", etc.
    - Relative dates: "today", "yesterday", "last month", "this year", etc.

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    text = date_str.strip().lower()
    relative = _relative_date(text, date.today())
    if relative is not None:
        return relative

    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_datetime(value: str) -> datetime:
    """Parse a timestamp, e.g. for confirmed/reconciled filters.

    A bare date means midnight. Naive values are taken as UTC.

    Raises:
        ValueError: If the value cannot be parsed
    """
    text = value.strip()
    relative = _relative_date(text.lower(), date.today())
    if relative is not None:
        return datetime(relative.year, relative.month, relative.day, tzinfo=UTC)
    try:
        parsed = date_parser.isoparse(text)
    except ValueError:
        try:
            parsed = date_parser.parse(text)
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Could not parse timestamp '{value}': {e}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def get_date_range(period: str) -> tuple[date, date]:
    """Get start and end dates for a specified period.

    Args:
        period: Period string (this-month, this-year, this-week, last-month, last-year, last-week)

    Returns:
        Tuple of (start_date, end_date) for the specified period. "this-*"
        periods end today.

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = date.today()

    if period.startswith("this-"):
        start = _relative_date(period.replace("-", " "), today)
        if start is not None:
            return (start, today)
    elif period.startswith("last-"):
        start = _relative_date(period.replace("-", " "), today)
        if start is not None:
            unit = period[5:]
            if unit == "month":
                return (start, start + relativedelta(months=1) - timedelta(days=1))
            if unit == "year":
                return (start, start + relativedelta(years=1) - timedelta(days=1))
            if unit == "week":
                return (start, start + timedelta(days=6))

    raise ValueError(
        f"Unknown period: '{period}'. Supported periods: this-month, this-year, "
        "this-week, last-month, last-year, last-week"
    )
