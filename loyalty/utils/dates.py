"""
Calendar helpers for expiry dates.
"""
import calendar
from datetime import datetime


def add_months(value: datetime, months: int) -> datetime:
    """
    Shift a datetime by whole calendar months.

    The day is clamped to the last day of the target month
    (Jan 31 + 1 month -> Feb 28/29).
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def add_years(value: datetime, years: int) -> datetime:
    """Shift a datetime by whole years (Feb 29 -> Feb 28 on non-leap years)."""
    return add_months(value, years * 12)


def format_date(value: datetime) -> str:
    """Human-readable date for notifications and emails, e.g. 'March 5, 2026'."""
    return f"{value.strftime('%B')} {value.day}, {value.year}"
