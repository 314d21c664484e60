"""Tests for period date arithmetic."""
from datetime import date

import pytest

from assetbook.core.periods import (
    elapsed_months,
    expected_periods,
    is_auto_due,
    next_period_date,
    pending_periods,
    period_date,
)


class TestPeriodDate:
    def test_first_period_is_one_month_after_purchase(self):
        assert period_date(date(2024, 1, 15), 1) == date(2024, 2, 15)

    def test_month_end_purchase_clamps_without_drift(self):
        purchase = date(2024, 1, 31)
        assert period_date(purchase, 1) == date(2024, 2, 29)
        assert period_date(purchase, 2) == date(2024, 3, 31)
        assert period_date(purchase, 3) == date(2024, 4, 30)
        assert period_date(purchase, 4) == date(2024, 5, 31)

    def test_non_leap_february(self):
        assert period_date(date(2023, 1, 31), 1) == date(2023, 2, 28)

    def test_crosses_year_boundary(self):
        assert period_date(date(2024, 11, 30), 3) == date(2025, 2, 28)

    def test_same_inputs_same_date(self):
        assert period_date(date(2024, 1, 31), 5) == period_date(date(2024, 1, 31), 5)

    def test_next_period_date_without_entries(self):
        assert next_period_date(date(2024, 1, 15), None) == date(2024, 2, 15)
        assert next_period_date(date(2024, 1, 15), 0) == date(2024, 2, 15)
        assert next_period_date(date(2024, 1, 15), 3) == date(2024, 5, 15)


class TestElapsedMonths:
    def test_ignores_day_of_month(self):
        assert elapsed_months(date(2024, 1, 31), date(2024, 2, 1)) == 1
        assert elapsed_months(date(2024, 1, 1), date(2024, 1, 31)) == 0

    def test_across_years(self):
        assert elapsed_months(date(2023, 11, 15), date(2024, 2, 10)) == 3

    def test_future_purchase_clamps_to_zero(self):
        assert elapsed_months(date(2024, 5, 10), date(2024, 3, 1)) == 0

    def test_expected_capped_at_useful_life(self):
        assert expected_periods(date(2020, 1, 15), 12, date(2024, 6, 1)) == 12
        assert expected_periods(date(2024, 1, 15), 12, date(2024, 4, 20)) == 3

    @pytest.mark.parametrize("last_sequence, expected", [(0, 5), (2, 3), (5, 0), (7, 0)])
    def test_pending_periods(self, last_sequence, expected):
        assert pending_periods(date(2024, 1, 15), 12, last_sequence, date(2024, 6, 10)) == expected


class TestAutoDueGate:
    def test_not_due_before_next_date(self):
        assert is_auto_due(date(2024, 2, 15), date(2024, 2, 10)) is False

    def test_not_due_in_same_month_as_next_date(self):
        assert is_auto_due(date(2024, 2, 15), date(2024, 2, 20)) is False

    def test_due_in_later_month(self):
        assert is_auto_due(date(2024, 2, 15), date(2024, 3, 1)) is True

    def test_due_a_year_later_in_same_month_number(self):
        assert is_auto_due(date(2024, 2, 15), date(2025, 2, 20)) is True
