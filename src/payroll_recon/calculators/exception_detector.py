"""Discrepancy detection between internal and external time.

Findings are data for payroll reviewers, not engine errors. Each check runs
independently, so one worker can collect several exceptions in a pass.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from payroll_recon.calculators.types import (
    ZERO,
    ExceptionCandidate,
    ExceptionType,
    ExternalTotals,
    InternalTotals,
    ReconciliationThresholds,
    Severity,
)

SOURCE_EXTERNAL = "External"
SOURCE_PORTAL = "Portal"


class ExceptionDetector:
    """Compares per-worker internal and external aggregates."""

    def __init__(self, thresholds: ReconciliationThresholds | None = None):
        self.thresholds = thresholds or ReconciliationThresholds()

    def detect_worker(
        self,
        worker_id: UUID,
        payable_hours: Decimal,
        internal: InternalTotals,
        external: ExternalTotals,
    ) -> list[ExceptionCandidate]:
        findings: list[ExceptionCandidate] = []

        mismatch = self.check_hours_mismatch(worker_id, payable_hours, external.external_hours)
        if mismatch:
            findings.append(mismatch)

        low_activity = self.check_low_activity(worker_id, external)
        if low_activity:
            findings.append(low_activity)

        missing = self.check_missing_allocation(worker_id, internal, external)
        if missing:
            findings.append(missing)

        return findings

    def check_hours_mismatch(
        self, worker_id: UUID, payable_hours: Decimal, external_hours: Decimal
    ) -> ExceptionCandidate | None:
        if external_hours <= 0:
            return None

        gap = abs(external_hours - payable_hours)
        if gap <= self.thresholds.mismatch_tolerance_hours:
            return None

        severity = Severity.CRIT if gap >= self.thresholds.crit_gap_hours else Severity.WARN
        return ExceptionCandidate(
            exception_type=ExceptionType.HOURS_MISMATCH,
            severity=severity,
            worker_id=worker_id,
            source=SOURCE_EXTERNAL,
            portal_hours=payable_hours,
            external_hours=external_hours,
            details=(
                f"External vs portal hours differ by {gap:.2f} hours for the period "
                f"(external {external_hours:.2f}, payable {payable_hours:.2f})."
            ),
        )

    def check_low_activity(
        self, worker_id: UUID, external: ExternalTotals
    ) -> ExceptionCandidate | None:
        if external.avg_activity is None:
            return None
        if external.avg_activity >= self.thresholds.activity_threshold:
            return None
        if external.external_hours < self.thresholds.min_external_hours_for_activity:
            return None

        return ExceptionCandidate(
            exception_type=ExceptionType.LOW_ACTIVITY,
            severity=Severity.WARN,
            worker_id=worker_id,
            source=SOURCE_EXTERNAL,
            external_hours=external.external_hours,
            details=(
                f"Average activity {external.avg_activity:.1f}% "
                f"(threshold {self.thresholds.activity_threshold}%)."
            ),
        )

    def check_missing_allocation(
        self, worker_id: UUID, internal: InternalTotals, external: ExternalTotals
    ) -> ExceptionCandidate | None:
        if external.external_hours <= 0 or internal.all_hours != 0:
            return None

        return ExceptionCandidate(
            exception_type=ExceptionType.MISSING_PORTAL_ALLOCATION,
            severity=Severity.WARN,
            worker_id=worker_id,
            source=SOURCE_PORTAL,
            portal_hours=ZERO,
            external_hours=external.external_hours,
            details=(
                "External time exists but no portal time was entered for the period. "
                "Time needs to be allocated to a client or deliverable."
            ),
        )

    def detect_run(self, unassigned_hours: Decimal) -> list[ExceptionCandidate]:
        """Run-level findings, not tied to any worker."""
        if unassigned_hours <= 0:
            return []

        return [
            ExceptionCandidate(
                exception_type=ExceptionType.UNASSIGNED_EXTERNAL_TIME,
                severity=Severity.WARN,
                source=SOURCE_EXTERNAL,
                external_hours=unassigned_hours,
                details=(
                    f"{unassigned_hours:.2f} external hours are not linked to any worker "
                    "(missing integration link)."
                ),
            )
        ]
