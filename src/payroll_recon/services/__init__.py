"""Payroll run lifecycle services."""

from payroll_recon.services.errors import (
    CalculationError,
    ExceptionNotFoundError,
    PayrollRunError,
    RunLockedError,
    RunNotFoundError,
    RunValidationError,
)
from payroll_recon.services.payroll_run_service import (
    NamedException,
    PayrollRunService,
    RunDetails,
)
from payroll_recon.services.state_machine import (
    InvalidTransitionError,
    PayrollRunStateMachine,
    PayrollRunStatus,
)

__all__ = [
    "CalculationError",
    "ExceptionNotFoundError",
    "InvalidTransitionError",
    "NamedException",
    "PayrollRunError",
    "PayrollRunService",
    "PayrollRunStateMachine",
    "PayrollRunStatus",
    "RunDetails",
    "RunLockedError",
    "RunNotFoundError",
    "RunValidationError",
]
