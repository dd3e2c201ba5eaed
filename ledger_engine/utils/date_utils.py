"""Date manipulation utilities"""

import calendar
from datetime import date
from typing import Tuple


def add_months(from_date: date, months: int) -> date:
    """Advance by whole months keeping the day, clamped to the target month's last day"""
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(from_date.day, last_day))


def month_bounds(reference: date) -> Tuple[date, date]:
    """First and last day of the calendar month containing reference"""
    last_day = calendar.monthrange(reference.year, reference.month)[1]
    return reference.replace(day=1), reference.replace(day=last_day)


def same_month(a: date, b: date) -> bool:
    return a.year == b.year and a.month == b.month
