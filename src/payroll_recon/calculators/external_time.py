"""Aggregation of independently tracked external time."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from payroll_recon.calculators.types import ZERO, ExternalTimeRow, ExternalTotals, PayPeriod


@dataclass
class ExternalAggregation:
    by_worker: dict[UUID, ExternalTotals] = field(default_factory=dict)
    unassigned_hours: Decimal = ZERO


class ExternalTimeAggregator:
    """Sums external hours and averages activity per linked worker.

    An activity of exactly zero means the tracker did not measure it, so
    such rows add hours but are left out of the average. Rows without a
    worker link feed the period-level unassigned figure only.
    """

    def aggregate(self, rows: Iterable[ExternalTimeRow], period: PayPeriod) -> ExternalAggregation:
        result = ExternalAggregation()
        activity_samples: dict[UUID, list[Decimal]] = {}

        for row in rows:
            if not period.contains(row.work_date):
                continue

            hours = row.hours or ZERO
            if row.worker_id is None:
                result.unassigned_hours += hours
                continue

            agg = result.by_worker.setdefault(row.worker_id, ExternalTotals())
            agg.external_hours += hours
            samples = activity_samples.setdefault(row.worker_id, [])
            if row.activity_percent is not None and row.activity_percent != 0:
                samples.append(row.activity_percent)

        for worker_id, samples in activity_samples.items():
            if samples:
                result.by_worker[worker_id].avg_activity = sum(samples, ZERO) / len(samples)

        return result
