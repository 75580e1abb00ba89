"""Aggregation of reimbursements, deductions and catch-up hours."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from payroll_recon.calculators.types import (
    ZERO,
    AdjustmentRow,
    AdjustmentTotals,
    AdjustmentType,
    PayPeriod,
)


class AdjustmentAggregator:
    """Sums adjustments whose own period overlaps the run period."""

    def aggregate(
        self, rows: Iterable[AdjustmentRow], period: PayPeriod
    ) -> dict[UUID, AdjustmentTotals]:
        totals: dict[UUID, AdjustmentTotals] = {}

        for row in rows:
            if not period.overlaps(row.period_start, row.period_end):
                continue

            agg = totals.setdefault(row.worker_id, AdjustmentTotals())
            if row.adjustment_type == AdjustmentType.REIMBURSEMENT.value:
                agg.reimbursements += row.amount or ZERO
            elif row.adjustment_type == AdjustmentType.DEDUCTION.value:
                agg.deductions += row.amount or ZERO
            elif row.adjustment_type == AdjustmentType.CATCHUP.value:
                agg.catch_up_hours += row.hours or ZERO

        return totals
