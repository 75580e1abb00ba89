"""Typed errors raised by the payroll run lifecycle."""

from __future__ import annotations

from uuid import UUID


class PayrollRunError(Exception):
    """Base class for payroll run lifecycle errors."""


class RunNotFoundError(PayrollRunError):
    """Raised when a payroll run id does not exist."""

    def __init__(self, payroll_run_id: UUID):
        self.payroll_run_id = payroll_run_id
        super().__init__(f"Payroll run {payroll_run_id} not found")


class ExceptionNotFoundError(PayrollRunError):
    """Raised when an exception id does not belong to the run."""

    def __init__(self, payroll_run_id: UUID, exception_id: UUID):
        self.payroll_run_id = payroll_run_id
        self.exception_id = exception_id
        super().__init__(f"Exception {exception_id} not found on payroll run {payroll_run_id}")


class RunValidationError(PayrollRunError):
    """Raised when run parameters are malformed, before any aggregation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


class RunLockedError(PayrollRunError):
    """Raised when another calculation of the same run holds the lock."""

    def __init__(self, payroll_run_id: UUID):
        self.payroll_run_id = payroll_run_id
        super().__init__(f"Payroll run {payroll_run_id} is already being calculated")


class CalculationError(PayrollRunError):
    """Raised when a calculation pass fails; the previous results are kept.

    Recalculation is idempotent, so callers can retry safely.
    """

    def __init__(self, payroll_run_id: UUID, stage: str, cause: Exception):
        self.payroll_run_id = payroll_run_id
        self.stage = stage
        self.cause = cause
        super().__init__(
            f"Calculation of payroll run {payroll_run_id} failed during {stage}: {cause}"
        )
