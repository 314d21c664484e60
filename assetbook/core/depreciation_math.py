"""
Straight-line depreciation arithmetic.

Amounts are Decimal, rounded to cents. The standard monthly charge is
value / useful_life; the final period (or any period where the standard charge
exceeds what is left) takes exactly the remaining book value, so a fully
depreciated asset always ends with cumulative == value.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from assetbook.core.periods import period_date


CENT = Decimal("0.01")
ZERO = Decimal("0.00")


@dataclass(frozen=True)
class PeriodFigures:
    """Amounts for a single ledger period."""
    period_amount: Decimal
    cumulative_depreciation: Decimal
    book_value_after: Decimal


@dataclass(frozen=True)
class ScheduleRow:
    """One projected (unwritten) period."""
    period_sequence: int
    period_date: date
    period_amount: Decimal
    cumulative_depreciation: Decimal
    book_value_after: Decimal


def to_money(amount) -> Decimal:
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def is_valid_configuration(value: Decimal, useful_life: int) -> bool:
    return useful_life is not None and useful_life > 0 and value is not None and value >= 0


def monthly_depreciation(value: Decimal, useful_life: int) -> Decimal:
    """Standard straight-line charge per period."""
    if useful_life <= 0:
        return ZERO
    return to_money(Decimal(value) / useful_life)


def compute_period(
    value: Decimal,
    useful_life: int,
    sequence: int,
    previous_cumulative: Decimal,
) -> PeriodFigures:
    """
    Figures for period ``sequence`` given the cumulative total before it.

    The amount is bounded to [0, remaining], so cumulative never decreases,
    even when the value has been lowered below what is already recorded.
    """
    value = to_money(value)
    previous_cumulative = to_money(previous_cumulative)
    remaining = max(ZERO, value - previous_cumulative)

    standard = monthly_depreciation(value, useful_life)
    if sequence >= useful_life or standard > remaining:
        amount = remaining
    else:
        amount = standard

    cumulative = previous_cumulative + amount

    return PeriodFigures(
        period_amount=amount,
        cumulative_depreciation=cumulative,
        book_value_after=max(ZERO, value - cumulative),
    )


def preview_figures(value: Decimal, useful_life: int, periods: int) -> PeriodFigures:
    """
    Accumulated depreciation and book value after ``periods`` periods,
    computed from the formula alone (no ledger).
    """
    value = to_money(value)
    periods = max(0, min(periods, useful_life))
    if periods >= useful_life:
        accumulated = value
    else:
        accumulated = min(value, monthly_depreciation(value, useful_life) * periods)
    return PeriodFigures(
        period_amount=monthly_depreciation(value, useful_life),
        cumulative_depreciation=accumulated,
        book_value_after=max(ZERO, value - accumulated),
    )


def project_schedule(
    purchase_date: date,
    value: Decimal,
    useful_life: int,
    last_sequence: int,
    previous_cumulative: Decimal,
) -> List[ScheduleRow]:
    """Simulate the remaining periods from last_sequence + 1 without writing them."""
    rows: List[ScheduleRow] = []
    cumulative = to_money(previous_cumulative)
    book_value = max(ZERO, to_money(value) - cumulative)

    sequence = last_sequence + 1
    while sequence <= useful_life and book_value > 0:
        figures = compute_period(value, useful_life, sequence, cumulative)
        rows.append(ScheduleRow(
            period_sequence=sequence,
            period_date=period_date(purchase_date, sequence),
            period_amount=figures.period_amount,
            cumulative_depreciation=figures.cumulative_depreciation,
            book_value_after=figures.book_value_after,
        ))
        cumulative = figures.cumulative_depreciation
        book_value = figures.book_value_after
        sequence += 1

    return rows
