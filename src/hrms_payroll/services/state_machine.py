"""Payroll entry state machine with transition validation."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from hrms_payroll.calculators.types import PayrollRunStatus

if TYPE_CHECKING:
    from hrms_payroll.calculators.types import PayrollEntry


# Backend statuses that all mean the entry has been paid out
PAID_SYNONYMS = frozenset({"PAID", "APPROVED", "PROCESSED"})


class PayrollAction(str, Enum):
    """Client actions that act on a payroll entry."""

    EDIT = "edit"
    PAY = "pay"


class InvalidTransitionError(Exception):
    """Raised when an action is attempted from a status that forbids it."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


def normalize_status(raw: object) -> PayrollRunStatus:
    """Map a backend run status onto DRAFT or PAID.

    Status strings are trimmed and uppercased; APPROVED and PROCESSED are
    treated as PAID. Missing or unknown statuses are DRAFT.
    """
    if isinstance(raw, PayrollRunStatus):
        return raw
    if raw is None:
        return PayrollRunStatus.DRAFT
    if str(raw).strip().upper() in PAID_SYNONYMS:
        return PayrollRunStatus.PAID
    return PayrollRunStatus.DRAFT


class PayrollEntryStateMachine:
    """State machine for payroll entry run status.

    Allowed transitions:
    - DRAFT → DRAFT (edit)
    - DRAFT → PAID (pay individual, pay all)

    PAID is terminal from the client's point of view; corrections happen on
    the backend only.
    """

    VALID_TRANSITIONS: dict[PayrollRunStatus, list[PayrollRunStatus]] = {
        PayrollRunStatus.DRAFT: [PayrollRunStatus.DRAFT, PayrollRunStatus.PAID],
        PayrollRunStatus.PAID: [],
    }

    ACTION_TARGETS: dict[PayrollAction, PayrollRunStatus] = {
        PayrollAction.EDIT: PayrollRunStatus.DRAFT,
        PayrollAction.PAY: PayrollRunStatus.PAID,
    }

    REJECTION_MESSAGES: dict[PayrollAction, str] = {
        PayrollAction.EDIT: "Entry is already marked as paid and cannot be edited",
        PayrollAction.PAY: "Entry is already marked as paid",
    }

    @classmethod
    def can_transition(cls, from_status: object, to_status: object) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(normalize_status(from_status), [])
        return normalize_status(to_status) in allowed

    @classmethod
    def validate_transition(cls, from_status: object, to_status: object) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(
                normalize_status(from_status).value,
                normalize_status(to_status).value,
            )

    @classmethod
    def can_edit(cls, status: object) -> bool:
        """Check if an entry's financial fields may be changed locally."""
        return normalize_status(status) == PayrollRunStatus.DRAFT

    @classmethod
    def can_pay(cls, status: object) -> bool:
        """Check if an entry can be sent to the pay endpoints."""
        return cls.can_transition(status, PayrollRunStatus.PAID)

    @classmethod
    def validate_action(cls, status: object, action: PayrollAction) -> None:
        """Reject an action on an entry whose status forbids it."""
        from_status = normalize_status(status)
        to_status = cls.ACTION_TARGETS[action]
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(
                from_status.value, to_status.value, cls.REJECTION_MESSAGES[action]
            )

    @classmethod
    def validate_entry_for_action(
        cls, entry: PayrollEntry, action: PayrollAction
    ) -> None:
        """Validate an entry for an action, with its employee in the message."""
        try:
            cls.validate_action(entry.run_status, action)
        except InvalidTransitionError as exc:
            who = entry.employee_name or f"assignment {entry.assignment_id}"
            raise InvalidTransitionError(
                exc.from_status, exc.to_status, f"{who}: {exc.reason}"
            ) from None
