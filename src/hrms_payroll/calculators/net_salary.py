"""Net salary calculator.

Single source of truth for an entry's net pay:

    net = max(0, gross + bonus - sum(deductions) - hour_variance_deduction)

Every flow that submits an entry (edit-save, approve, pay, pay-all) goes
through calculate_net_salary so the persisted figures never drift apart.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from hrms_payroll.calculators.amounts import ZERO, round_to_cents, to_decimal
from hrms_payroll.calculators.hour_variance import hour_variance_deduction, hourly_rate
from hrms_payroll.calculators.types import Deduction, PayPeriod, PayrollEntry


@dataclass(frozen=True)
class NetSalaryBreakdown:
    """Components of a net salary computation."""

    gross_salary: Decimal
    bonus_amount: Decimal
    total_deductions: Decimal
    hourly_rate: Decimal
    hour_variance_deduction: Decimal
    net_salary: Decimal

    @property
    def was_floored(self) -> bool:
        """True when deductions exceeded earnings and net was capped at 0."""
        raw = (
            self.gross_salary
            + self.bonus_amount
            - self.total_deductions
            - self.hour_variance_deduction
        )
        return raw < 0


def payable_deductions(deductions: Iterable[Deduction]) -> list[Deduction]:
    """Deductions that will be submitted (strictly positive amounts)."""
    return [d for d in deductions if d.is_payable]


def total_deductions(deductions: Iterable[Deduction]) -> Decimal:
    """Sum of every listed deduction amount, including non-positive ones."""
    return sum((to_decimal(d.amount) for d in deductions), ZERO)


def calculate_net_salary(
    gross_salary: Any,
    period: PayPeriod,
    bonus_amount: Any = ZERO,
    deductions: Iterable[Deduction] = (),
    hour_variance: Any = ZERO,
) -> NetSalaryBreakdown:
    """Compute net salary for one entry. Pure; no rounding until the end."""
    gross = to_decimal(gross_salary)
    bonus = to_decimal(bonus_amount)
    deducted = total_deductions(deductions)
    variance_deduction = hour_variance_deduction(hour_variance, gross, period)

    net = gross + bonus - deducted - variance_deduction
    if net < 0:
        net = ZERO

    return NetSalaryBreakdown(
        gross_salary=gross,
        bonus_amount=bonus,
        total_deductions=deducted,
        hourly_rate=hourly_rate(gross, period),
        hour_variance_deduction=variance_deduction,
        net_salary=round_to_cents(net),
    )


def calculate_entry(entry: PayrollEntry) -> NetSalaryBreakdown:
    """Compute net salary from an entry's own fields."""
    return calculate_net_salary(
        gross_salary=entry.gross_salary,
        period=entry.period,
        bonus_amount=entry.bonus_amount,
        deductions=entry.deductions,
        hour_variance=entry.hour_variance,
    )
