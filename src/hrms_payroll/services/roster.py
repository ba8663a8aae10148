"""Owned collection of a period's payroll entries."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from decimal import Decimal

from hrms_payroll.calculators.amounts import ZERO
from hrms_payroll.calculators.types import PayPeriod, PayrollEntry


@dataclass(frozen=True)
class RosterSummary:
    """Footer totals for a period view."""

    period: PayPeriod
    entry_count: int
    paid_count: int
    total_net_salary: Decimal

    @property
    def unpaid_count(self) -> int:
        return self.entry_count - self.paid_count


class PayrollRoster:
    """Entries for one period, keyed by assignment_id, in server order.

    Replacement is always wholesale (``replace``) so that readers never see
    a half-applied bulk update.
    """

    def __init__(self, period: PayPeriod, entries: Iterable[PayrollEntry] = ()):
        self.period = period
        self._entries: dict[int, PayrollEntry] = {}
        self.replace(entries)

    def replace(self, entries: Iterable[PayrollEntry]) -> None:
        """Swap in a new set of entries."""
        self._entries = {entry.assignment_id: entry for entry in entries}

    def put(self, entry: PayrollEntry) -> None:
        """Update one existing entry in place, keeping its position."""
        if entry.assignment_id not in self._entries:
            raise KeyError(f"Assignment {entry.assignment_id} is not in the {self.period} roster")
        self._entries[entry.assignment_id] = entry

    def get(self, assignment_id: int) -> PayrollEntry:
        try:
            return self._entries[assignment_id]
        except KeyError:
            raise KeyError(
                f"Assignment {assignment_id} is not in the {self.period} roster"
            ) from None

    def __contains__(self, assignment_id: object) -> bool:
        return assignment_id in self._entries

    def __iter__(self) -> Iterator[PayrollEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> list[PayrollEntry]:
        return list(self._entries.values())

    def unpaid(self) -> list[PayrollEntry]:
        return [e for e in self._entries.values() if not e.is_paid]

    def paid(self) -> list[PayrollEntry]:
        return [e for e in self._entries.values() if e.is_paid]

    def total_net_salary(self) -> Decimal:
        return sum((e.net_salary for e in self._entries.values()), ZERO)

    def summary(self) -> RosterSummary:
        return RosterSummary(
            period=self.period,
            entry_count=len(self),
            paid_count=len(self.paid()),
            total_net_salary=self.total_net_salary(),
        )
