"""Type definitions for the reconciliation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

ZERO = Decimal("0")


class CompensationModel(str, Enum):
    """How a worker is paid."""

    HOURLY = "hourly"
    SALARIED = "salaried"


class ApprovalStatus(str, Enum):
    """Internal timecard approval states."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class AdjustmentType(str, Enum):
    """Ad-hoc adjustment kinds."""

    REIMBURSEMENT = "REIMBURSEMENT"
    DEDUCTION = "DEDUCTION"
    CATCHUP = "CATCHUP"


class BucketRole(str, Enum):
    """Special internal work buckets."""

    TIME_OFF = "time_off"
    INTERNAL_WORK = "internal_work"


class ExceptionType(str, Enum):
    """Discrepancy classes raised for payroll review."""

    HOURS_MISMATCH = "HOURS_MISMATCH"
    LOW_ACTIVITY = "LOW_ACTIVITY"
    MISSING_PORTAL_ALLOCATION = "MISSING_PORTAL_ALLOCATION"
    UNASSIGNED_EXTERNAL_TIME = "UNASSIGNED_EXTERNAL_TIME"


class Severity(str, Enum):
    """Exception severity, lowest first."""

    INFO = "INFO"
    WARN = "WARN"
    CRIT = "CRIT"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.INFO: 0, Severity.WARN: 1, Severity.CRIT: 2}


# ===== Source rows (read up front, detached from the session) =====


@dataclass(frozen=True)
class PayPeriod:
    """Inclusive date range of a run."""

    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def overlaps(self, start: date, end: date) -> bool:
        return start <= self.end and end >= self.start


@dataclass(frozen=True)
class WorkerProfile:
    worker_id: UUID
    first_name: str
    last_name: str
    compensation_model: CompensationModel
    hourly_rate: Decimal | None = None
    flat_rate: Decimal | None = None

    @property
    def sort_key(self) -> tuple[str, str, str]:
        return (self.last_name.lower(), self.first_name.lower(), str(self.worker_id))


@dataclass(frozen=True)
class InternalTimeRow:
    worker_id: UUID
    work_date: date
    approval_status: str
    client_id: UUID | None = None
    client_facing_hours: Decimal | None = None
    non_client_facing_hours: Decimal | None = None
    other_task_hours: Decimal | None = None

    @property
    def total_hours(self) -> Decimal:
        return (
            (self.client_facing_hours or ZERO)
            + (self.non_client_facing_hours or ZERO)
            + (self.other_task_hours or ZERO)
        )


@dataclass(frozen=True)
class ExternalTimeRow:
    work_date: date
    hours: Decimal
    worker_id: UUID | None = None
    activity_percent: Decimal | None = None


@dataclass(frozen=True)
class AdjustmentRow:
    worker_id: UUID
    period_start: date
    period_end: date
    adjustment_type: str
    amount: Decimal | None = None
    hours: Decimal | None = None


@dataclass(frozen=True)
class BucketConfig:
    """Client identifiers of the special work buckets, resolved once per pass."""

    time_off_client_id: UUID | None = None
    internal_work_client_id: UUID | None = None

    @classmethod
    def from_assignments(cls, assignments: dict[str, UUID]) -> BucketConfig:
        return cls(
            time_off_client_id=assignments.get(BucketRole.TIME_OFF.value),
            internal_work_client_id=assignments.get(BucketRole.INTERNAL_WORK.value),
        )


@dataclass(frozen=True)
class ReconciliationThresholds:
    activity_threshold: Decimal = Decimal("70")
    mismatch_tolerance_hours: Decimal = Decimal("0.5")
    crit_gap_hours: Decimal = Decimal("2")
    min_external_hours_for_activity: Decimal = Decimal("2")


@dataclass
class RunInputs:
    """Everything one calculation pass reads, loaded before any write."""

    payroll_run_id: UUID
    period: PayPeriod
    include_submitted: bool
    workers: list[WorkerProfile]
    holidays: set[date]
    buckets: BucketConfig
    internal_rows: list[InternalTimeRow]
    external_rows: list[ExternalTimeRow]
    adjustment_rows: list[AdjustmentRow]


# ===== Aggregates =====


@dataclass
class InternalTotals:
    approved_hours: Decimal = ZERO
    submitted_hours: Decimal = ZERO
    all_hours: Decimal = ZERO
    time_off_hours: Decimal = ZERO
    internal_hours: Decimal = ZERO


@dataclass
class ExternalTotals:
    external_hours: Decimal = ZERO
    avg_activity: Decimal | None = None


@dataclass
class AdjustmentTotals:
    reimbursements: Decimal = ZERO
    deductions: Decimal = ZERO
    catch_up_hours: Decimal = ZERO


# ===== Results =====


@dataclass
class LineCandidate:
    """A payroll run line before persistence."""

    worker_id: UUID
    compensation_model: CompensationModel
    expected_work_days: Decimal
    expected_hours: Decimal
    time_off_days: Decimal
    holiday_days: Decimal
    approved_hours: Decimal
    submitted_hours: Decimal
    payable_hours: Decimal
    logged_hours: Decimal
    internal_work_hours: Decimal
    external_tracked_hours: Decimal
    avg_activity_percent: Decimal | None
    reimbursements: Decimal
    deductions: Decimal
    catch_up_hours: Decimal
    gross_pay: Decimal
    net_pay: Decimal
    line_id: UUID | None = None
    inputs_fingerprint: str = ""

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "worker_id": str(self.worker_id),
            "compensation_model": self.compensation_model.value,
            "expected_work_days": str(self.expected_work_days),
            "time_off_days": str(self.time_off_days),
            "holiday_days": str(self.holiday_days),
            "approved_hours": str(self.approved_hours),
            "submitted_hours": str(self.submitted_hours),
            "payable_hours": str(self.payable_hours),
            "logged_hours": str(self.logged_hours),
            "external_tracked_hours": str(self.external_tracked_hours),
            "avg_activity_percent": (
                str(self.avg_activity_percent) if self.avg_activity_percent is not None else None
            ),
            "reimbursements": str(self.reimbursements),
            "deductions": str(self.deductions),
            "catch_up_hours": str(self.catch_up_hours),
            "gross_pay": str(self.gross_pay),
            "net_pay": str(self.net_pay),
        }


@dataclass
class ExceptionCandidate:
    """A discrepancy finding before persistence."""

    exception_type: ExceptionType
    severity: Severity
    details: str
    worker_id: UUID | None = None
    source: str | None = None
    portal_hours: Decimal | None = None
    external_hours: Decimal | None = None
    work_date: date | None = None
    exception_id: UUID | None = None
    sequence: int = 0


@dataclass
class RunCalculationResult:
    """Full replacement result set for one run."""

    payroll_run_id: UUID
    expected_work_days: int
    holiday_days: int
    lines: list[LineCandidate] = field(default_factory=list)
    exceptions: list[ExceptionCandidate] = field(default_factory=list)
    unassigned_external_hours: Decimal = ZERO

    @property
    def total_gross(self) -> Decimal:
        return sum((line.gross_pay for line in self.lines), ZERO)

    @property
    def total_net(self) -> Decimal:
        return sum((line.net_pay for line in self.lines), ZERO)
