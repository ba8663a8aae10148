"""Hour-variance deduction calculator.

A negative hour variance (shortfall against the expected working hours of
the month) is charged at the employee's implied hourly rate. Positive
variance (overtime) is neither deducted nor credited.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal
from typing import Any

from hrms_payroll.calculators.amounts import ZERO, to_decimal
from hrms_payroll.calculators.types import PayPeriod

STANDARD_HOURS_PER_DAY = 8


def count_weekdays(period: PayPeriod) -> int:
    """Count Monday to Friday days in the period's month."""
    _, days_in_month = calendar.monthrange(period.year, period.month)
    return sum(
        1
        for day in range(1, days_in_month + 1)
        if date(period.year, period.month, day).weekday() < 5
    )


def expected_hours(period: PayPeriod) -> int:
    """Expected working hours for a full month."""
    return count_weekdays(period) * STANDARD_HOURS_PER_DAY


def hourly_rate(gross_salary: Any, period: PayPeriod) -> Decimal:
    """Monthly gross spread over the month's expected hours (0 if none)."""
    hours = expected_hours(period)
    if hours == 0:
        return ZERO
    return to_decimal(gross_salary) / Decimal(hours)


def hour_variance_deduction(
    hour_variance: Any,
    gross_salary: Any,
    period: PayPeriod,
) -> Decimal:
    """Currency deduction for a shortfall of worked hours.

    Only negative variance is charged. Overtime yields zero here; it is not
    paid out as a credit.
    """
    variance = to_decimal(hour_variance)
    gross = to_decimal(gross_salary)
    if variance >= 0 or gross <= 0:
        return ZERO
    return abs(variance) * hourly_rate(gross, period)
