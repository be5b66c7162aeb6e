"""Date manipulation utilities"""

import calendar
from datetime import date, timedelta
from typing import Tuple


def last_day_of_month(year: int, month: int) -> int:
    """Number of days in the given month"""
    return calendar.monthrange(year, month)[1]


def add_months(year: int, month: int, months: int) -> Tuple[int, int]:
    """Shift a (year, month) pair, wrapping December into January"""
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def clamped_date(year: int, month: int, day: int) -> date:
    """Date in the given month, with the day pulled back to the month's last day"""
    return date(year, month, min(day, last_day_of_month(year, month)))


def date_window(start: date, days: int) -> Tuple[date, date]:
    """Inclusive window [start, start + days]"""
    return start, start + timedelta(days=days)
