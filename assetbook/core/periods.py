"""
Period arithmetic for monthly depreciation.

Every period date is derived from the purchase date directly
(purchase_date + N months), never from the previous period's date, so a
purchase on the 31st gives Feb 28/29 for the February period and is back on
the 31st in March. relativedelta clamps to the last valid day of the month.

None of these functions read a clock; callers pass ``today`` explicitly.
"""
from datetime import date
from typing import Optional

from dateutil.relativedelta import relativedelta


def period_date(purchase_date: date, sequence: int) -> date:
    """Date on which period ``sequence`` (1-based) falls due."""
    return purchase_date + relativedelta(months=sequence)


def elapsed_months(purchase_date: date, today: date) -> int:
    """Calendar months between purchase and today, never negative.

    Only year and month are compared; the day of month is ignored.
    """
    months = (today.year - purchase_date.year) * 12 + (today.month - purchase_date.month)
    return max(0, months)


def expected_periods(purchase_date: date, useful_life: int, today: date) -> int:
    """Periods that should be on the ledger as of today."""
    return min(elapsed_months(purchase_date, today), useful_life)


def pending_periods(
    purchase_date: date,
    useful_life: int,
    last_sequence: int,
    today: date,
) -> int:
    """Periods expected as of today but not yet recorded."""
    return max(0, expected_periods(purchase_date, useful_life, today) - last_sequence)


def next_period_date(purchase_date: date, last_sequence: Optional[int]) -> date:
    """Due date of the period after ``last_sequence`` (None or 0 = no entries)."""
    return period_date(purchase_date, (last_sequence or 0) + 1)


def is_auto_due(next_date: date, today: date) -> bool:
    """
    Calendar gate for automatic generation.

    The next period must have fallen due, and today must be in a later
    month than the due date so a run never fires twice in the due month.
    """
    if today < next_date:
        return False
    return (today.year, today.month) != (next_date.year, next_date.month)
