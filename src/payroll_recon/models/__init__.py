"""ORM models for the payroll reconciliation engine."""

from payroll_recon.models.base import Base, TimestampMixin
from payroll_recon.models.payroll import (
    PayrollRun,
    PayrollRunAuditEvent,
    PayrollRunException,
    PayrollRunLine,
)
from payroll_recon.models.workforce import (
    Adjustment,
    ExternalTimeRecord,
    Holiday,
    InternalTimeRecord,
    WorkBucketAssignment,
    Worker,
)

__all__ = [
    "Adjustment",
    "Base",
    "ExternalTimeRecord",
    "Holiday",
    "InternalTimeRecord",
    "PayrollRun",
    "PayrollRunAuditEvent",
    "PayrollRunException",
    "PayrollRunLine",
    "TimestampMixin",
    "WorkBucketAssignment",
    "Worker",
]
