"""Reconciliation of locally confirmed payments with a server re-fetch.

After a pay call succeeds, the period listing read back from the backend
can still report the entry as DRAFT (replica lag, caching). The merge below
keeps the server authoritative for everything except a PAID status (and its
pay date) that this client has already seen confirmed.

This is a read-after-write consistency workaround for the payroll view
only; it is not a general merge policy.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from hrms_payroll.calculators.types import PayrollEntry, PayrollRunStatus
from hrms_payroll.services.state_machine import normalize_status

logger = logging.getLogger(__name__)


def merge_preserving_paid(
    previous: Iterable[PayrollEntry],
    fresh: Iterable[PayrollEntry],
) -> list[PayrollEntry]:
    """Merge a fresh server listing over the previous local one.

    Entries are matched by assignment_id. Where the previous local entry was
    PAID, its run_status and pay_date replace the fresh record's; all other
    fields come from the fresh record. Ordering follows ``fresh``.
    """
    paid_locally = {
        entry.assignment_id: entry
        for entry in previous
        if normalize_status(entry.run_status) == PayrollRunStatus.PAID
    }

    merged: list[PayrollEntry] = []
    for entry in fresh:
        known = paid_locally.get(entry.assignment_id)
        if known is None:
            merged.append(entry)
            continue

        if entry.run_status != PayrollRunStatus.PAID:
            logger.info(
                "Keeping local PAID status for assignment %s; server still reports %s",
                entry.assignment_id,
                entry.run_status.value,
            )
        merged.append(entry.copy(run_status=known.run_status, pay_date=known.pay_date))

    return merged
