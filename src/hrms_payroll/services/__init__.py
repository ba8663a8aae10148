"""Payroll lifecycle services.

The orchestrating PayrollService lives in hrms_payroll.services.payroll_service;
it is not re-exported here because it depends on the API client.
"""

from hrms_payroll.services.reconciliation import merge_preserving_paid
from hrms_payroll.services.roster import PayrollRoster, RosterSummary
from hrms_payroll.services.state_machine import (
    InvalidTransitionError,
    PayrollAction,
    PayrollEntryStateMachine,
    normalize_status,
)

__all__ = [
    "InvalidTransitionError",
    "PayrollAction",
    "PayrollEntryStateMachine",
    "PayrollRoster",
    "RosterSummary",
    "merge_preserving_paid",
    "normalize_status",
]
