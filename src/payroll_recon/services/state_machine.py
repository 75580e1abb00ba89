"""Payroll run state machine with transition validation."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from payroll_recon.services.errors import PayrollRunError

if TYPE_CHECKING:
    from payroll_recon.models import PayrollRun


class PayrollRunStatus(str, Enum):
    """Payroll run status values."""

    DRAFT = "draft"
    CALCULATED = "calculated"
    FINALIZED = "finalized"


class InvalidTransitionError(PayrollRunError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PayrollRunStateMachine:
    """State machine for payroll run status transitions.

    Allowed transitions:
    - draft → calculated
    - calculated → calculated (recalculate)
    - calculated → draft (a calculation parameter was edited)
    - calculated → finalized

    Finalized is terminal: a finalized run cannot be recalculated, edited
    or finalized again, so its lines stay authoritative.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayrollRunStatus.DRAFT: [PayrollRunStatus.CALCULATED],
        PayrollRunStatus.CALCULATED: [
            PayrollRunStatus.CALCULATED,
            PayrollRunStatus.DRAFT,
            PayrollRunStatus.FINALIZED,
        ],
        PayrollRunStatus.FINALIZED: [],  # Terminal state
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return not cls.VALID_TRANSITIONS.get(status, [])

    @classmethod
    def validate_run_for_transition(cls, run: PayrollRun, to_status: str) -> list[str]:
        """Validate a run for a specific transition, returning any errors.

        Returns list of error messages (empty if valid).
        """
        errors: list[str] = []
        from_status = run.status

        if not cls.can_transition(from_status, to_status):
            if cls.is_terminal(from_status):
                errors.append("Payroll run is finalized")
            elif to_status == PayrollRunStatus.FINALIZED:
                errors.append("Payroll run must be calculated before it can be finalized")
            else:
                errors.append(f"Cannot transition from '{from_status}' to '{to_status}'")
            return errors

        if to_status == PayrollRunStatus.FINALIZED and run.calculated_at is None:
            errors.append("Payroll run has never been calculated")

        return errors
