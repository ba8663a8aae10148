"""Tests for the hour-variance deduction calculator."""

from decimal import Decimal

import pytest

from hrms_payroll.calculators.hour_variance import (
    count_weekdays,
    expected_hours,
    hour_variance_deduction,
    hourly_rate,
)
from hrms_payroll.calculators.types import PayPeriod

APRIL_2024 = PayPeriod(month=4, year=2024)  # 30 days, starts on a Monday: 22 weekdays
FEB_2025 = PayPeriod(month=2, year=2025)  # 20 weekdays
MARCH_2025 = PayPeriod(month=3, year=2025)  # starts on a Saturday: 21 weekdays


class TestWeekdays:
    """Test weekday counting and expected hours."""

    @pytest.mark.parametrize(
        "period, weekdays",
        [
            (APRIL_2024, 22),
            (FEB_2025, 20),
            (MARCH_2025, 21),
            (PayPeriod(month=2, year=2024), 21),  # leap year, Feb 29 is a Thursday
        ],
    )
    def test_count_weekdays(self, period, weekdays):
        assert count_weekdays(period) == weekdays

    def test_expected_hours_is_eight_per_weekday(self):
        assert expected_hours(APRIL_2024) == 176
        assert expected_hours(FEB_2025) == 160


class TestHourlyRate:
    """Test hourly rate derivation from monthly gross."""

    def test_hourly_rate(self):
        """4400 over 22 weekdays of 8 hours is 25/hour."""
        assert hourly_rate(Decimal("4400"), APRIL_2024) == Decimal("25")

    def test_hourly_rate_coerces_inputs(self):
        assert hourly_rate("4400", APRIL_2024) == Decimal("25")
        assert hourly_rate(None, APRIL_2024) == Decimal("0")
        assert hourly_rate("", APRIL_2024) == Decimal("0")


class TestHourVarianceDeduction:
    """Test shortfall deductions."""

    def test_shortfall_is_charged_at_hourly_rate(self):
        assert hour_variance_deduction(Decimal("-4"), Decimal("4400"), APRIL_2024) == Decimal("100")

    def test_scenario_twenty_weekdays(self):
        """5000 over 160 hours is 31.25/hour; 2 hours short is 62.50."""
        assert hour_variance_deduction(-2, 5000, FEB_2025) == Decimal("62.5")

    @pytest.mark.parametrize("variance", [0, 1, "8", Decimal("37.5"), 10_000])
    def test_overtime_never_deducts_or_credits(self, variance):
        assert hour_variance_deduction(variance, Decimal("4400"), APRIL_2024) == Decimal("0")

    @pytest.mark.parametrize("variance", [None, "", "abc", float("nan"), "Infinity"])
    def test_non_numeric_variance_is_zero(self, variance):
        assert hour_variance_deduction(variance, Decimal("4400"), APRIL_2024) == Decimal("0")

    def test_no_gross_means_no_deduction(self):
        assert hour_variance_deduction(-10, 0, APRIL_2024) == Decimal("0")
        assert hour_variance_deduction(-10, None, APRIL_2024) == Decimal("0")

    def test_fractional_shortfall(self):
        assert hour_variance_deduction("-1.5", "4400", APRIL_2024) == Decimal("37.5")


class TestPayPeriod:
    """Test period validation."""

    @pytest.mark.parametrize("month", [0, 13, -1])
    def test_invalid_month_rejected(self, month):
        with pytest.raises(ValueError):
            PayPeriod(month=month, year=2025)

    def test_str(self):
        assert str(FEB_2025) == "2025-02"
