"""Type definitions for payroll entries and their inputs."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum

from hrms_payroll.calculators.amounts import to_decimal


class PayrollRunStatus(str, Enum):
    """Payroll run status of a single entry, after normalization."""

    DRAFT = "DRAFT"
    PAID = "PAID"


@dataclass(frozen=True)
class PayPeriod:
    """A calendar month that payroll is run for."""

    month: int
    year: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {self.month}")
        if self.year < 1:
            raise ValueError(f"Year must be positive, got {self.year}")

    @classmethod
    def current(cls, today: date | None = None) -> PayPeriod:
        today = today or date.today()
        return cls(month=today.month, year=today.year)

    def as_params(self) -> dict[str, int]:
        return {"month": self.month, "year": self.year}

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class DeductionType:
    """Reference data for a kind of deduction (loan, advance, penalty...)."""

    deduction_type_id: int
    name: str


@dataclass
class Deduction:
    """An itemized deduction on a payroll entry.

    Amounts are kept as entered; only positive amounts are ever submitted.
    """

    deduction_type_id: int | None
    amount: Decimal = Decimal("0")
    reason: str = ""
    effective_date: date | None = None
    deduction_type_name: str = ""

    @property
    def is_payable(self) -> bool:
        return to_decimal(self.amount) > 0


@dataclass
class PayrollEntry:
    """One employee assignment's payroll row for a period."""

    employee_id: int
    assignment_id: int
    period: PayPeriod
    employee_name: str = ""
    payroll_entry_id: int | None = None

    gross_salary: Decimal = Decimal("0")
    bonus_amount: Decimal = Decimal("0")
    hour_variance: Decimal = Decimal("0")  # Signed hours; negative = shortfall
    deductions: list[Deduction] = field(default_factory=list)

    # Derived, never trusted as input
    net_salary: Decimal = Decimal("0")

    run_status: PayrollRunStatus = PayrollRunStatus.DRAFT
    pay_date: date | None = None
    remarks: str | None = None

    @property
    def is_paid(self) -> bool:
        return self.run_status == PayrollRunStatus.PAID

    def copy(self, **changes) -> PayrollEntry:
        """Return a copy with its own deduction list and the given changes."""
        changes.setdefault("deductions", [replace(d) for d in self.deductions])
        return replace(self, **changes)
