"""Calendar date helpers used at the input boundary."""
import calendar
from datetime import date, datetime
from typing import Any, Tuple


class InvalidDateInput(ValueError):
    """Raised when a value cannot be resolved to a valid calendar day."""


# Accepted text layouts, tried in order
DATE_FORMATS = [
    '%Y-%m-%d',      # ISO 8601 (form input, stored records)
    '%Y/%m/%d',      # Alternative ISO format
    '%m/%d/%Y',      # US format
    '%B %d, %Y',     # Full month name
    '%b %d, %Y',     # Abbreviated month name
]


def is_leap_year(year: int) -> bool:
    """Gregorian rule: divisible by 4, except centuries not divisible by 400."""
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def days_in_month(year: int, month: int) -> int:
    """Return the last day-of-month for the given year and month."""
    return calendar.monthrange(year, month)[1]


def previous_month(year: int, month: int) -> Tuple[int, int]:
    """Return (year, month) of the month before the given one."""
    if month == 1:
        return year - 1, 12
    return year, month - 1


def to_calendar_date(value: Any) -> date:
    """
    Resolve a raw date value into a single calendar date.

    Args:
        value: A date, a datetime (time of day is dropped), a text date in
            one of DATE_FORMATS, an ISO datetime string such as the JSON
            form of a browser Date, or a (year, month, day) tuple

    Returns:
        datetime.date

    Raises:
        InvalidDateInput: If the value does not name a real calendar day
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if isinstance(value, (tuple, list)):
        if len(value) != 3:
            raise InvalidDateInput(f"Expected (year, month, day), got {value!r}")
        try:
            return date(*(int(part) for part in value))
        except (TypeError, ValueError) as e:
            raise InvalidDateInput(f"Invalid calendar date {value!r}: {e}") from e

    if isinstance(value, str):
        return _parse_date_string(value)

    raise InvalidDateInput(
        f"Unsupported date value of type {type(value).__name__}: {value!r}"
    )


def _parse_date_string(date_str: str) -> date:
    text = date_str.strip()
    if not text:
        raise InvalidDateInput("Empty date string")

    # "2024-03-15T00:00:00.000Z" -> only the calendar part is kept
    if len(text) > 10 and text[4] == '-' and text[10] in 'T ':
        text = text[:10]

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    raise InvalidDateInput(f"Unrecognised date: {date_str!r}")


def format_iso_date(value: date) -> str:
    """Format a calendar date as YYYY-MM-DD."""
    return value.isoformat()
