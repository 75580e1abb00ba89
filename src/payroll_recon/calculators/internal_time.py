"""Aggregation of internally logged timecard hours."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from payroll_recon.calculators.types import (
    ApprovalStatus,
    BucketConfig,
    InternalTimeRow,
    InternalTotals,
    PayPeriod,
)

QUARTER = Decimal("4")


def hours_to_days(hours: Decimal, hours_per_day: Decimal = Decimal("8")) -> Decimal:
    """Convert hours to days, rounded half-up to the nearest quarter day."""
    quarters = (hours / hours_per_day * QUARTER).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return quarters / QUARTER


class InternalTimeAggregator:
    """Sums internal hours per worker, split by approval state and bucket.

    Every row in the period counts toward all_hours regardless of status.
    Time-off and internal-work sub-totals also ignore approval state; they
    are selected only by the client the row was logged against.
    """

    def __init__(self, buckets: BucketConfig):
        self.buckets = buckets

    def aggregate(
        self, rows: Iterable[InternalTimeRow], period: PayPeriod
    ) -> dict[UUID, InternalTotals]:
        totals: dict[UUID, InternalTotals] = {}

        for row in rows:
            if not period.contains(row.work_date):
                continue

            agg = totals.setdefault(row.worker_id, InternalTotals())
            hours = row.total_hours
            agg.all_hours += hours

            if row.approval_status == ApprovalStatus.APPROVED.value:
                agg.approved_hours += hours
            elif row.approval_status == ApprovalStatus.SUBMITTED.value:
                agg.submitted_hours += hours

            if row.client_id is None:
                continue
            if row.client_id == self.buckets.time_off_client_id:
                agg.time_off_hours += hours
            if row.client_id == self.buckets.internal_work_client_id:
                agg.internal_hours += hours

        return totals
