"""Pydantic schemas for the payroll backend's request/response bodies."""

from datetime import date, datetime
from decimal import Decimal
from email.utils import parsedate_to_datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer, field_validator

from hrms_payroll.calculators.amounts import to_decimal
from hrms_payroll.calculators.net_salary import payable_deductions
from hrms_payroll.calculators.types import (
    Deduction,
    DeductionType,
    PayPeriod,
    PayrollEntry,
)
from hrms_payroll.services.state_machine import normalize_status


def _coerce_date(value: Any) -> date | None:
    """Accept dates, datetimes, ISO strings and RFC 822 strings (date part only).

    Anything else reads as no date rather than failing the whole row.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    # Flask serializes dates as HTTP dates, e.g. "Thu, 27 Feb 2025 00:00:00 GMT"
    try:
        return parsedate_to_datetime(text).date()
    except (TypeError, ValueError):
        return None


# The backend expects plain JSON numbers for money
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

# Lenient inbound forms: empty or non-numeric money reads as 0
WireMoney = Annotated[Decimal, BeforeValidator(to_decimal)]
WireDate = Annotated[date | None, BeforeValidator(_coerce_date)]


# ============================================================================
# Responses
# ============================================================================


class DeductionRecord(BaseModel):
    """Deduction as listed on a payroll row."""

    model_config = ConfigDict(extra="ignore")

    deduction_type_id: int | None = None
    deduction_type_name: str | None = None
    amount: WireMoney = Decimal("0")
    reason: str | None = None
    effective_date: WireDate = None

    def to_domain(self) -> Deduction:
        return Deduction(
            deduction_type_id=self.deduction_type_id,
            amount=self.amount,
            reason=self.reason or "",
            effective_date=self.effective_date,
            deduction_type_name=self.deduction_type_name or "",
        )


class PayrollRow(BaseModel):
    """One row of GET /payroll/employees."""

    model_config = ConfigDict(extra="ignore")

    employee_id: int
    assignment_id: int
    employee_name: str | None = None
    payroll_entry_id: int | None = None
    gross_salary: WireMoney = Decimal("0")
    bonus_amount: WireMoney = Decimal("0")
    hour_variance: WireMoney = Decimal("0")
    net_salary: WireMoney = Decimal("0")
    run_status: str | None = None
    pay_date: WireDate = None
    remarks: str | None = None
    deductions: list[DeductionRecord] = Field(default_factory=list)

    @field_validator("deductions", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return value or []

    def to_domain(self, period: PayPeriod) -> PayrollEntry:
        return PayrollEntry(
            employee_id=self.employee_id,
            assignment_id=self.assignment_id,
            period=period,
            employee_name=self.employee_name or "",
            payroll_entry_id=self.payroll_entry_id,
            gross_salary=self.gross_salary,
            bonus_amount=self.bonus_amount,
            hour_variance=self.hour_variance,
            deductions=[d.to_domain() for d in self.deductions],
            net_salary=self.net_salary,
            run_status=normalize_status(self.run_status),
            pay_date=self.pay_date,
            remarks=self.remarks,
        )


class DeductionTypeRecord(BaseModel):
    """One row of GET /payroll/deduction-types."""

    model_config = ConfigDict(extra="ignore")

    deduction_type_id: int
    name: str

    def to_domain(self) -> DeductionType:
        return DeductionType(deduction_type_id=self.deduction_type_id, name=self.name)


class PayResult(BaseModel):
    """Response of the pay-individual and pay-all endpoints."""

    model_config = ConfigDict(extra="allow")

    pay_date: WireDate = None
    status: str | None = None


# ============================================================================
# Requests
# ============================================================================


class DeductionPayload(BaseModel):
    """Deduction as submitted to POST /payroll/entries."""

    deduction_type_id: int
    amount: Money
    reason: str = ""
    effective_date: date


class EntryPayload(BaseModel):
    """Entry as submitted to POST /payroll/entries."""

    assignment_id: int
    payroll_entry_id: int | None = None
    gross_salary: Money
    bonus_amount: Money
    hour_variance: Money
    net_salary: Money
    remarks: str | None = None
    deductions: list[DeductionPayload] = Field(default_factory=list)

    @classmethod
    def from_entry(
        cls,
        entry: PayrollEntry,
        net_salary: Decimal,
        today: date,
        default_deduction_type_id: int = 1,
    ) -> "EntryPayload":
        """Build the submitted form of an entry; non-positive deductions are dropped."""
        return cls(
            assignment_id=entry.assignment_id,
            payroll_entry_id=entry.payroll_entry_id,
            gross_salary=to_decimal(entry.gross_salary),
            bonus_amount=to_decimal(entry.bonus_amount),
            hour_variance=to_decimal(entry.hour_variance),
            net_salary=net_salary,
            remarks=entry.remarks or None,
            deductions=[
                DeductionPayload(
                    deduction_type_id=d.deduction_type_id or default_deduction_type_id,
                    amount=to_decimal(d.amount),
                    reason=d.reason or "",
                    effective_date=d.effective_date or today,
                )
                for d in payable_deductions(entry.deductions)
            ],
        )


class BulkUpsertRequest(BaseModel):
    """Body of POST /payroll/entries."""

    month: int
    year: int
    entries: list[EntryPayload]
    created_by_user_id: int


class PayIndividualRequest(BaseModel):
    """Body of POST /payroll/pay-individual."""

    month: int
    year: int
    assignment_id: int
    employee_id: int


class PayAllRequest(BaseModel):
    """Body of POST /payroll/pay-all."""

    month: int
    year: int
