"""Payroll calculation functions."""

from hrms_payroll.calculators.amounts import round_to_cents, to_decimal
from hrms_payroll.calculators.hour_variance import (
    count_weekdays,
    expected_hours,
    hour_variance_deduction,
    hourly_rate,
)
from hrms_payroll.calculators.net_salary import (
    NetSalaryBreakdown,
    calculate_entry,
    calculate_net_salary,
    payable_deductions,
    total_deductions,
)
from hrms_payroll.calculators.types import (
    Deduction,
    DeductionType,
    PayPeriod,
    PayrollEntry,
    PayrollRunStatus,
)

__all__ = [
    "Deduction",
    "DeductionType",
    "NetSalaryBreakdown",
    "PayPeriod",
    "PayrollEntry",
    "PayrollRunStatus",
    "calculate_entry",
    "calculate_net_salary",
    "count_weekdays",
    "expected_hours",
    "hour_variance_deduction",
    "hourly_rate",
    "payable_deductions",
    "round_to_cents",
    "to_decimal",
    "total_deductions",
]
