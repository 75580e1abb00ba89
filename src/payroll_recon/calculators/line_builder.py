"""Line and exception builders with deterministic identifiers."""

from __future__ import annotations

import hashlib
import json
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

from payroll_recon.calculators.pay_policy import net_pay
from payroll_recon.calculators.types import ExceptionCandidate, LineCandidate


class LineItemBuilder:
    """Rounds figures for persistence and derives stable row identifiers.

    Rounding:
    - Money to 2 decimals, half-up, at persistence
    - Hours and days to 2 decimals
    - Policies compute exact decimals; net pay is derived from the rounded
      gross so gross + reimbursements - deductions == net on stored rows

    Identifiers are hashes of the run, the worker and the line content, so
    an unchanged recalculation produces the same rows.
    """

    OUTPUT_PRECISION = Decimal("0.01")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return amount.quantize(LineItemBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def round_hours(hours: Decimal | None) -> Decimal | None:
        if hours is None:
            return None
        return hours.quantize(LineItemBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def compute_line_hash(line: LineCandidate) -> str:
        """Compute deterministic hash for a line.

        The hash is based on the canonical representation of defining fields,
        ensuring identical inputs produce identical hashes.
        """
        canonical = line.to_canonical_dict()
        json_str = json.dumps(canonical, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    @staticmethod
    def derive_id(data: dict[str, Any]) -> UUID:
        """Derive a UUID from the sha256 of canonical JSON."""
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return UUID(bytes=hash_bytes[:16])

    @staticmethod
    def finish_line(
        line: LineCandidate, payroll_run_id: UUID, engine_version: str
    ) -> LineCandidate:
        """Round a line in place and assign its fingerprint and identifier."""
        line.gross_pay = LineItemBuilder.round_to_cents(line.gross_pay)
        line.reimbursements = LineItemBuilder.round_to_cents(line.reimbursements)
        line.deductions = LineItemBuilder.round_to_cents(line.deductions)
        line.net_pay = net_pay(line.gross_pay, line.reimbursements, line.deductions)

        for name in (
            "expected_work_days",
            "expected_hours",
            "time_off_days",
            "holiday_days",
            "approved_hours",
            "submitted_hours",
            "payable_hours",
            "logged_hours",
            "internal_work_hours",
            "external_tracked_hours",
            "avg_activity_percent",
            "catch_up_hours",
        ):
            setattr(line, name, LineItemBuilder.round_hours(getattr(line, name)))

        line.inputs_fingerprint = LineItemBuilder.compute_line_hash(line)
        line.line_id = LineItemBuilder.derive_id(
            {
                "payroll_run_id": str(payroll_run_id),
                "worker_id": str(line.worker_id),
                "engine_version": engine_version,
                "inputs_fingerprint": line.inputs_fingerprint,
            }
        )
        return line

    @staticmethod
    def finish_exception(
        finding: ExceptionCandidate, payroll_run_id: UUID, sequence: int
    ) -> ExceptionCandidate:
        """Round evidence figures and assign sequence and identifier."""
        finding.portal_hours = LineItemBuilder.round_hours(finding.portal_hours)
        finding.external_hours = LineItemBuilder.round_hours(finding.external_hours)
        finding.sequence = sequence
        finding.exception_id = LineItemBuilder.derive_id(
            {
                "payroll_run_id": str(payroll_run_id),
                "worker_id": str(finding.worker_id) if finding.worker_id else None,
                "exception_type": finding.exception_type.value,
                "sequence": sequence,
            }
        )
        return finding
