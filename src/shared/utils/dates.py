"""Calendar-month helpers shared by statements and reports.

All dates are naive calendar days in the server's local time; collection
and due-date filtering use the same convention.
"""

from calendar import monthrange
from datetime import MAXYEAR, MINYEAR, date

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def is_valid_period(year: int, month: int) -> bool:
    return MINYEAR <= year <= MAXYEAR and 1 <= month <= 12


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of the calendar month (inclusive)."""
    last_day = monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move (year, month) by delta months, e.g. (2025, 1) - 1 -> (2024, 12)."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def trailing_months(year: int, month: int, count: int) -> list[tuple[int, int]]:
    """The `count` months ending at (year, month), oldest first."""
    return [shift_month(year, month, -offset) for offset in range(count - 1, -1, -1)]


def month_label(month: int) -> str:
    return MONTH_NAMES[month - 1]


def days_between(start: date, end: date) -> int:
    """Signed number of days from start to end."""
    return (end - start).days
