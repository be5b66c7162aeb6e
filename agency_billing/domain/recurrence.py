"""Due date arithmetic for recurring payment schedules"""

from datetime import date
from typing import Optional

from agency_billing.utils.date_utils import add_months, clamped_date


def due_date_in_month(year: int, month: int, day_of_month: int) -> date:
    """
    Due date of a schedule anchored on `day_of_month` inside a given month.

    Anchors past the end of a short month fall on its last day:
        day 31 in February 2025 -> 2025-02-28
        day 30 in February 2024 -> 2024-02-29
    """
    return clamped_date(year, month, day_of_month)


def next_due_date(current_due: date, day_of_month: int) -> date:
    """
    Due date of the payment that follows `current_due` in a monthly series.

    The month is advanced by one (December wraps to January of the next
    year) and the anchor is clamped to the target month. Clamping is always
    applied to the schedule anchor, never to the previous due date, so a
    day-31 series goes Jan 31 -> Feb 28 -> Mar 31.
    """
    year, month = add_months(current_due.year, current_due.month, 1)
    return due_date_in_month(year, month, day_of_month)


def within_contract(due_date: date, contract_end: Optional[date]) -> bool:
    """A due date is generated only while it is on or before the contract end"""
    if contract_end is None:
        return True
    return due_date <= contract_end
