"""Reconciliation engine - loads source data and runs one calculation pass."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_recon.calculators.adjustments import AdjustmentAggregator
from payroll_recon.calculators.business_calendar import (
    business_days_in_period,
    holiday_days_in_period,
)
from payroll_recon.calculators.exception_detector import ExceptionDetector
from payroll_recon.calculators.external_time import ExternalTimeAggregator
from payroll_recon.calculators.internal_time import InternalTimeAggregator, hours_to_days
from payroll_recon.calculators.line_builder import LineItemBuilder
from payroll_recon.calculators.pay_policy import (
    PayInputs,
    net_pay,
    payable_hours,
    policy_for,
    resolve_rates,
)
from payroll_recon.calculators.types import (
    AdjustmentRow,
    AdjustmentTotals,
    BucketConfig,
    CompensationModel,
    ExternalTimeRow,
    ExternalTotals,
    InternalTimeRow,
    InternalTotals,
    LineCandidate,
    PayPeriod,
    ReconciliationThresholds,
    RunCalculationResult,
    RunInputs,
    WorkerProfile,
)
from payroll_recon.config import get_settings
from payroll_recon.models import (
    Adjustment,
    ExternalTimeRecord,
    Holiday,
    InternalTimeRecord,
    PayrollRun,
    WorkBucketAssignment,
    Worker,
)

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """Payroll reconciliation engine.

    Calculation pass (stable order):
    1) Business days and weekday holidays for the period
    2) Internal, external and adjustment aggregates per worker
    3) Pay policy per active worker -> one line each
    4) Exception detection per worker, then run-level checks

    The pass itself is a pure function of RunInputs. All database reads
    happen in load_inputs, before any write.
    """

    def __init__(
        self,
        session: AsyncSession | None = None,
        thresholds: ReconciliationThresholds | None = None,
        engine_version: str | None = None,
        hours_per_day: Decimal | None = None,
    ):
        settings = get_settings()
        self.session = session
        self.thresholds = thresholds or ReconciliationThresholds(
            activity_threshold=settings.activity_threshold,
            mismatch_tolerance_hours=settings.mismatch_tolerance_hours,
        )
        self.engine_version = engine_version or settings.engine_version
        self.hours_per_day = hours_per_day or settings.hours_per_day

    def calculate(self, inputs: RunInputs) -> RunCalculationResult:
        """Build the full replacement result set for a run in memory."""
        period = inputs.period
        expected_days = business_days_in_period(period.start, period.end, inputs.holidays)
        holiday_days = holiday_days_in_period(period.start, period.end, inputs.holidays)

        internal = InternalTimeAggregator(inputs.buckets).aggregate(inputs.internal_rows, period)
        external = ExternalTimeAggregator().aggregate(inputs.external_rows, period)
        adjustments = AdjustmentAggregator().aggregate(inputs.adjustment_rows, period)

        detector = ExceptionDetector(self.thresholds)
        result = RunCalculationResult(
            payroll_run_id=inputs.payroll_run_id,
            expected_work_days=expected_days,
            holiday_days=holiday_days,
            unassigned_external_hours=external.unassigned_hours,
        )

        findings = []
        for worker in sorted(inputs.workers, key=lambda w: w.sort_key):
            worker_internal = internal.get(worker.worker_id) or InternalTotals()
            worker_external = external.by_worker.get(worker.worker_id) or ExternalTotals()
            worker_adj = adjustments.get(worker.worker_id) or AdjustmentTotals()

            line = self._build_line(
                worker,
                Decimal(expected_days),
                Decimal(holiday_days),
                inputs.include_submitted,
                worker_internal,
                worker_external,
                worker_adj,
            )
            result.lines.append(
                LineItemBuilder.finish_line(line, inputs.payroll_run_id, self.engine_version)
            )

            findings.extend(
                detector.detect_worker(
                    worker.worker_id, line.payable_hours, worker_internal, worker_external
                )
            )

        findings.extend(detector.detect_run(external.unassigned_hours))
        result.exceptions = [
            LineItemBuilder.finish_exception(finding, inputs.payroll_run_id, sequence)
            for sequence, finding in enumerate(findings, start=1)
        ]
        return result

    def _build_line(
        self,
        worker: WorkerProfile,
        expected_days: Decimal,
        holiday_days: Decimal,
        include_submitted: bool,
        internal: InternalTotals,
        external: ExternalTotals,
        adj: AdjustmentTotals,
    ) -> LineCandidate:
        """Price one worker."""
        payable = payable_hours(
            internal.approved_hours, internal.submitted_hours, include_submitted
        )
        hourly_rate, flat_rate = resolve_rates(worker)
        pay_inputs = PayInputs(
            expected_days=expected_days,
            time_off_days=hours_to_days(internal.time_off_hours, self.hours_per_day),
            holiday_days=holiday_days,
            payable_hours=payable,
            catch_up_hours=adj.catch_up_hours,
            hourly_rate=hourly_rate,
            flat_rate=flat_rate,
        )
        gross = policy_for(worker.compensation_model).gross_pay(pay_inputs)

        return LineCandidate(
            worker_id=worker.worker_id,
            compensation_model=worker.compensation_model,
            expected_work_days=expected_days,
            expected_hours=expected_days * self.hours_per_day,
            time_off_days=pay_inputs.time_off_days,
            holiday_days=holiday_days,
            approved_hours=internal.approved_hours,
            submitted_hours=internal.submitted_hours,
            payable_hours=payable,
            logged_hours=internal.all_hours,
            internal_work_hours=internal.internal_hours,
            external_tracked_hours=external.external_hours,
            avg_activity_percent=external.avg_activity,
            reimbursements=adj.reimbursements,
            deductions=adj.deductions,
            catch_up_hours=adj.catch_up_hours,
            gross_pay=gross,
            net_pay=net_pay(gross, adj.reimbursements, adj.deductions),
        )

    # === Data Loading Methods ===

    async def load_inputs(self, run: PayrollRun) -> RunInputs:
        """Read every source row a pass needs for this run."""
        if self.session is None:
            raise RuntimeError("ReconciliationEngine needs a session to load inputs")

        period = PayPeriod(run.period_start, run.period_end)
        inputs = RunInputs(
            payroll_run_id=run.payroll_run_id,
            period=period,
            include_submitted=run.include_submitted,
            workers=await self._get_active_workers(),
            holidays=await self._get_holidays(period),
            buckets=await self._get_bucket_config(),
            internal_rows=await self._get_internal_rows(period),
            external_rows=await self._get_external_rows(period),
            adjustment_rows=await self._get_adjustment_rows(period),
        )
        logger.debug(
            "Loaded inputs for run %s: %d workers, %d internal, %d external, %d adjustments",
            run.payroll_run_id,
            len(inputs.workers),
            len(inputs.internal_rows),
            len(inputs.external_rows),
            len(inputs.adjustment_rows),
        )
        return inputs

    async def _get_active_workers(self) -> list[WorkerProfile]:
        result = await self.session.execute(select(Worker).where(Worker.is_active.is_(True)))
        return [
            WorkerProfile(
                worker_id=w.worker_id,
                first_name=w.first_name,
                last_name=w.last_name,
                compensation_model=CompensationModel(w.compensation_model),
                hourly_rate=w.hourly_rate,
                flat_rate=w.flat_rate,
            )
            for w in result.scalars().all()
        ]

    async def _get_holidays(self, period: PayPeriod) -> set[date]:
        result = await self.session.execute(
            select(Holiday.holiday_date).where(
                Holiday.holiday_date >= period.start,
                Holiday.holiday_date <= period.end,
            )
        )
        return set(result.scalars().all())

    async def _get_bucket_config(self) -> BucketConfig:
        result = await self.session.execute(
            select(WorkBucketAssignment.role, WorkBucketAssignment.client_id)
        )
        return BucketConfig.from_assignments({role: client_id for role, client_id in result.all()})

    async def _get_internal_rows(self, period: PayPeriod) -> list[InternalTimeRow]:
        result = await self.session.execute(
            select(InternalTimeRecord).where(
                InternalTimeRecord.work_date >= period.start,
                InternalTimeRecord.work_date <= period.end,
            )
        )
        return [
            InternalTimeRow(
                worker_id=r.worker_id,
                work_date=r.work_date,
                approval_status=r.approval_status,
                client_id=r.client_id,
                client_facing_hours=r.client_facing_hours,
                non_client_facing_hours=r.non_client_facing_hours,
                other_task_hours=r.other_task_hours,
            )
            for r in result.scalars().all()
        ]

    async def _get_external_rows(self, period: PayPeriod) -> list[ExternalTimeRow]:
        result = await self.session.execute(
            select(ExternalTimeRecord).where(
                ExternalTimeRecord.work_date >= period.start,
                ExternalTimeRecord.work_date <= period.end,
            )
        )
        return [
            ExternalTimeRow(
                work_date=r.work_date,
                hours=r.hours,
                worker_id=r.worker_id,
                activity_percent=r.activity_percent,
            )
            for r in result.scalars().all()
        ]

    async def _get_adjustment_rows(self, period: PayPeriod) -> list[AdjustmentRow]:
        result = await self.session.execute(
            select(Adjustment).where(
                Adjustment.period_start <= period.end,
                Adjustment.period_end >= period.start,
            )
        )
        return [
            AdjustmentRow(
                worker_id=r.worker_id,
                period_start=r.period_start,
                period_end=r.period_end,
                adjustment_type=r.adjustment_type,
                amount=r.amount,
                hours=r.hours,
            )
            for r in result.scalars().all()
        ]
