"""Payroll service - orchestrates a period's payroll against the backend.

Operations:
- load_period: fetch a period's entries and the deduction types
- begin_edit / save_entry: edit a DRAFT entry and persist it
- pay_individual / approve: persist one entry, then mark it paid
- pay_all: persist every DRAFT entry, then pay the whole period
- refresh: re-read the period, optionally keeping locally confirmed PAID status

Every mutation persists before it pays, and mutations never interleave.
Local state only shows PAID after the pay call itself has succeeded.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation

from hrms_payroll.api.client import BackendError, PayrollBackendClient
from hrms_payroll.api.schemas import EntryPayload
from hrms_payroll.calculators.amounts import to_decimal
from hrms_payroll.calculators.net_salary import NetSalaryBreakdown, calculate_entry
from hrms_payroll.calculators.types import (
    Deduction,
    DeductionType,
    PayPeriod,
    PayrollEntry,
    PayrollRunStatus,
)
from hrms_payroll.config import Settings, get_settings
from hrms_payroll.services.reconciliation import merge_preserving_paid
from hrms_payroll.services.roster import PayrollRoster, RosterSummary
from hrms_payroll.services.state_machine import PayrollAction, PayrollEntryStateMachine

logger = logging.getLogger(__name__)

FALLBACK_DEDUCTION_TYPE_ID = 1


class EntryValidationError(ValueError):
    """Raised when an edited entry cannot be submitted."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


class PeriodNotLoadedError(RuntimeError):
    """Raised when an operation needs a period that has not been loaded."""


@dataclass
class PayOutcome:
    """Result of a pay action."""

    paid: list[PayrollEntry] = field(default_factory=list)
    pay_date: date | None = None
    reconciled: bool = True

    @property
    def paid_count(self) -> int:
        return len(self.paid)


def _is_number(value: object) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return Decimal(str(value).strip()).is_finite()
    except (InvalidOperation, ValueError):
        return False


def validate_entry(entry: PayrollEntry) -> PayrollEntry:
    """Check an edited entry and return it with numeric fields coerced.

    Gross salary is required and must be a non-negative number. Bonus and
    hour variance fall back to 0 when left empty.
    """
    errors: list[str] = []

    if entry.assignment_id is None:
        errors.append("Assignment is required")
    if not _is_number(entry.gross_salary):
        errors.append("Gross salary is required and must be a number")
    elif to_decimal(entry.gross_salary) < 0:
        errors.append("Gross salary cannot be negative")
    if to_decimal(entry.bonus_amount) < 0:
        errors.append("Bonus amount cannot be negative")

    if errors:
        raise EntryValidationError(errors)

    return entry.copy(
        gross_salary=to_decimal(entry.gross_salary),
        bonus_amount=to_decimal(entry.bonus_amount),
        hour_variance=to_decimal(entry.hour_variance),
        deductions=[
            Deduction(
                deduction_type_id=d.deduction_type_id,
                amount=to_decimal(d.amount),
                reason=d.reason or "",
                effective_date=d.effective_date,
                deduction_type_name=d.deduction_type_name,
            )
            for d in entry.deductions
        ],
    )


class PayrollService:
    """Owns one period's payroll roster and drives it through the backend."""

    def __init__(
        self,
        client: PayrollBackendClient,
        settings: Settings | None = None,
        clock: Callable[[], date] = date.today,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self._clock = clock
        self._sleep = sleep
        self._roster: PayrollRoster | None = None
        self.deduction_types: list[DeductionType] = []
        self._load_generation = 0
        self._mutation_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def roster(self) -> PayrollRoster:
        if self._roster is None:
            raise PeriodNotLoadedError("No payroll period has been loaded")
        return self._roster

    @property
    def period(self) -> PayPeriod:
        return self.roster.period

    async def load_period(self, period: PayPeriod) -> PayrollRoster:
        """Fetch a period's entries and deduction types; trusts the backend fully.

        If another load starts before this one finishes, this one's results
        are discarded.
        """
        self._load_generation += 1
        generation = self._load_generation

        entries, deduction_types = await asyncio.gather(
            self.client.get_entries(period),
            self.client.get_deduction_types(),
        )

        if generation != self._load_generation:
            logger.debug("Discarding superseded load of %s", period)
            return PayrollRoster(period, entries)

        self._roster = PayrollRoster(period, entries)
        self.deduction_types = deduction_types
        logger.info("Loaded %d payroll entries for %s", len(entries), period)
        return self._roster

    async def refresh(self, preserve_paid: bool = False) -> PayrollRoster:
        """Re-read the current period from the backend.

        With ``preserve_paid`` set, entries this client already saw paid stay
        PAID even if the backend has not caught up yet.
        """
        roster = self.roster
        generation = self._load_generation
        fresh = await self.client.get_entries(roster.period)

        if generation != self._load_generation or roster is not self._roster:
            logger.debug("Discarding refresh of %s; period changed", roster.period)
            return self.roster

        if preserve_paid:
            fresh = merge_preserving_paid(roster.entries(), fresh)
        roster.replace(fresh)
        return roster

    def summary(self) -> RosterSummary:
        return self.roster.summary()

    def preview(self, entry: PayrollEntry) -> NetSalaryBreakdown:
        """Net salary an edited entry would be saved with; nothing is sent."""
        return calculate_entry(validate_entry(entry))

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def default_deduction_type(self) -> DeductionType | None:
        return self.deduction_types[0] if self.deduction_types else None

    def deduction_type_name(self, deduction_type_id: int | None) -> str:
        for deduction_type in self.deduction_types:
            if deduction_type.deduction_type_id == deduction_type_id:
                return deduction_type.name
        return ""

    def new_deduction(self) -> Deduction:
        """A blank deduction line for the edit form."""
        default = self.default_deduction_type()
        return Deduction(
            deduction_type_id=default.deduction_type_id if default else FALLBACK_DEDUCTION_TYPE_ID,
            deduction_type_name=default.name if default else "",
            amount=Decimal("0"),
            reason="",
            effective_date=self._clock(),
        )

    def begin_edit(self, assignment_id: int) -> PayrollEntry:
        """Editable copy of a DRAFT entry with deduction defaults filled in."""
        entry = self.roster.get(assignment_id)
        PayrollEntryStateMachine.validate_entry_for_action(entry, PayrollAction.EDIT)

        default = self.default_deduction_type()
        default_id = default.deduction_type_id if default else FALLBACK_DEDUCTION_TYPE_ID
        deductions = [
            Deduction(
                deduction_type_id=d.deduction_type_id or default_id,
                amount=d.amount or Decimal("0"),
                reason=d.reason or "",
                effective_date=d.effective_date or self._clock(),
                deduction_type_name=d.deduction_type_name
                or self.deduction_type_name(d.deduction_type_id or default_id),
            )
            for d in entry.deductions
        ]
        hour_variance = entry.hour_variance if entry.hour_variance is not None else Decimal("0")
        return entry.copy(deductions=deductions, hour_variance=hour_variance)

    async def save_entry(self, entry: PayrollEntry) -> PayrollEntry:
        """Validate and persist an edited DRAFT entry, then re-read the period.

        A failed re-read is logged; the save itself has already succeeded.
        """
        async with self._mutation_lock:
            roster = self.roster
            current = roster.get(entry.assignment_id)
            PayrollEntryStateMachine.validate_entry_for_action(current, PayrollAction.EDIT)

            cleaned = validate_entry(entry.copy(run_status=current.run_status))
            saved = await self._persist(roster, [cleaned])
            logger.info("Saved payroll entry for assignment %s", entry.assignment_id)

        try:
            await self.refresh()
        except BackendError as exc:
            logger.warning("Re-read after save failed, keeping saved entry: %s", exc)
            return saved[0]
        if entry.assignment_id in self.roster:
            return self.roster.get(entry.assignment_id)
        return saved[0]

    # ------------------------------------------------------------------
    # Paying
    # ------------------------------------------------------------------

    async def pay_individual(
        self,
        assignment_id: int,
        settle_delay: float | None = None,
    ) -> PayOutcome:
        """Persist one entry, mark it paid, then reconcile after a settle delay."""
        async with self._mutation_lock:
            roster = self.roster
            entry = roster.get(assignment_id)
            PayrollEntryStateMachine.validate_entry_for_action(entry, PayrollAction.PAY)

            (persisted,) = await self._persist(roster, [entry])
            result = await self.client.pay_individual(
                roster.period, persisted.assignment_id, persisted.employee_id
            )
            pay_date = result.pay_date or self._clock()
            paid = persisted.copy(run_status=PayrollRunStatus.PAID, pay_date=pay_date)
            roster.put(paid)
            logger.info(
                "Marked assignment %s paid on %s for %s",
                assignment_id,
                pay_date,
                roster.period,
            )

        reconciled = await self._settle_and_reconcile(settle_delay)
        return PayOutcome(paid=[paid], pay_date=pay_date, reconciled=reconciled)

    async def approve(self, assignment_id: int) -> PayOutcome:
        """Approve and mark one entry paid, reconciling immediately."""
        return await self.pay_individual(assignment_id, settle_delay=0)

    async def pay_all(self, settle_delay: float | None = None) -> PayOutcome:
        """Persist every DRAFT entry in one call, then pay the whole period.

        Entries are not validated individually first; the backend decides
        what an unset gross salary means.
        """
        async with self._mutation_lock:
            roster = self.roster
            unpaid = roster.unpaid()
            if not unpaid:
                logger.info("All entries for %s are already paid", roster.period)
                return PayOutcome()

            persisted = await self._persist(roster, unpaid)
            result = await self.client.pay_all(roster.period)
            pay_date = result.pay_date or self._clock()

            paid_ids = {entry.assignment_id for entry in persisted}
            updated = [
                entry.copy(run_status=PayrollRunStatus.PAID, pay_date=pay_date)
                if entry.assignment_id in paid_ids and not entry.is_paid
                else entry
                for entry in roster.entries()
            ]
            roster.replace(updated)
            paid = [entry for entry in updated if entry.assignment_id in paid_ids]
            logger.info("Marked %d entries paid on %s for %s", len(paid), pay_date, roster.period)

        reconciled = await self._settle_and_reconcile(settle_delay)
        return PayOutcome(paid=paid, pay_date=pay_date, reconciled=reconciled)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _persist(
        self, roster: PayrollRoster, entries: Sequence[PayrollEntry]
    ) -> list[PayrollEntry]:
        """Bulk-upsert entries with freshly computed net salaries.

        The roster only takes the new figures once the backend has accepted
        them.
        """
        today = self._clock()
        default = self.default_deduction_type()
        default_id = default.deduction_type_id if default else FALLBACK_DEDUCTION_TYPE_ID

        computed = [entry.copy(net_salary=calculate_entry(entry).net_salary) for entry in entries]
        payloads = [
            EntryPayload.from_entry(
                entry,
                net_salary=entry.net_salary,
                today=today,
                default_deduction_type_id=default_id,
            )
            for entry in computed
        ]

        logger.debug("Persisting %d payroll entries for %s", len(payloads), roster.period)
        await self.client.upsert_entries(
            roster.period, payloads, self.settings.created_by_user_id
        )

        for entry in computed:
            if entry.assignment_id in roster:
                roster.put(entry)
        return computed

    async def _settle_and_reconcile(self, settle_delay: float | None) -> bool:
        """Wait for backend writes to settle, then re-read keeping PAID status.

        The pay has already succeeded at this point, so a failed re-read is
        reported rather than raised; local PAID state is left as it is.
        """
        delay = self.settings.reconcile_delay_seconds if settle_delay is None else settle_delay
        if delay > 0:
            await self._sleep(delay)
        try:
            await self.refresh(preserve_paid=True)
        except BackendError as exc:
            logger.warning("Reconciliation refresh failed, keeping local paid status: %s", exc)
            return False
        return True
