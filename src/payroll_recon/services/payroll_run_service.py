"""Payroll run service - lifecycle orchestrator for reconciliation runs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, NamedTuple
from uuid import UUID

from sqlalchemy import case, select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_recon.calculators.engine import ReconciliationEngine
from payroll_recon.calculators.types import (
    ReconciliationThresholds,
    RunCalculationResult,
    Severity,
)
from payroll_recon.config import get_settings
from payroll_recon.database import acquire_run_lock, release_run_lock
from payroll_recon.models import (
    PayrollRun,
    PayrollRunAuditEvent,
    PayrollRunException,
    PayrollRunLine,
    Worker,
)
from payroll_recon.services.errors import (
    CalculationError,
    ExceptionNotFoundError,
    PayrollRunError,
    RunLockedError,
    RunNotFoundError,
    RunValidationError,
)
from payroll_recon.services.state_machine import (
    InvalidTransitionError,
    PayrollRunStateMachine,
    PayrollRunStatus,
)

logger = logging.getLogger(__name__)

RUN_TYPES = ("regular", "offcycle", "correction")

# Run fields that change calculated figures; editing one discards the results.
CALCULATION_PARAMETERS = ("include_submitted",)


class NamedException(NamedTuple):
    """An exception row with its worker's display name (None for run-level findings)."""

    exception: PayrollRunException
    worker_name: str | None


@dataclass
class RunDetails:
    """A run with its current lines and exceptions.

    worker_names covers every worker referenced by a line or an exception.
    """

    run: PayrollRun
    lines: list[PayrollRunLine] = field(default_factory=list)
    exceptions: list[PayrollRunException] = field(default_factory=list)
    worker_names: dict[UUID, str] = field(default_factory=dict)


def validate_run_parameters(
    run_type: str | None,
    period_start: date | None,
    period_end: date | None,
) -> list[str]:
    """Return parameter errors for a run (empty if valid)."""
    errors: list[str] = []
    if not run_type:
        errors.append("run_type is required")
    elif run_type not in RUN_TYPES:
        errors.append(f"run_type must be one of {', '.join(RUN_TYPES)}")
    if period_start is None:
        errors.append("period_start is required")
    if period_end is None:
        errors.append("period_end is required")
    if period_start is not None and period_end is not None and period_end < period_start:
        errors.append("period_end must not be before period_start")
    return errors


def _named_exceptions():
    # Run-level findings have no worker, hence the outer join
    return select(PayrollRunException, Worker.first_name, Worker.last_name).outerjoin(
        Worker, Worker.worker_id == PayrollRunException.worker_id
    )


def _to_named(row) -> NamedException:
    exception, first_name, last_name = row
    if exception.worker_id is None or first_name is None:
        return NamedException(exception, None)
    return NamedException(exception, f"{first_name} {last_name}")


class PayrollRunService:
    """Service for managing the payroll run lifecycle.

    Operations:
    - create_run: Draft run for a period
    - update_run: Edit include_submitted / notes until finalized
    - calculate_run: Full destructive recompute of lines and exceptions
    - finalize_run: Terminal transition recording the finalizer
    - get_run_details / list_runs / list_exceptions: Reads
    - resolve_exception: Mark a finding as reviewed

    Each mutating operation is one unit of work: it commits on success and
    rolls back on any failure.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.settings = get_settings()

    # ===== Reads =====

    async def get_run(self, payroll_run_id: UUID) -> PayrollRun | None:
        result = await self.session.execute(
            select(PayrollRun).where(PayrollRun.payroll_run_id == payroll_run_id)
        )
        return result.scalar_one_or_none()

    async def require_run(self, payroll_run_id: UUID) -> PayrollRun:
        run = await self.get_run(payroll_run_id)
        if run is None:
            raise RunNotFoundError(payroll_run_id)
        return run

    async def get_run_details(self, payroll_run_id: UUID) -> RunDetails:
        """Load a run with its lines and exceptions."""
        run = await self.require_run(payroll_run_id)

        lines_result = await self.session.execute(
            select(PayrollRunLine, Worker)
            .join(Worker, Worker.worker_id == PayrollRunLine.worker_id)
            .where(PayrollRunLine.payroll_run_id == payroll_run_id)
            .order_by(Worker.last_name, Worker.first_name, PayrollRunLine.worker_id)
        )
        lines: list[PayrollRunLine] = []
        names: dict[UUID, str] = {}
        for line, worker in lines_result.all():
            lines.append(line)
            names[line.worker_id] = worker.display_name

        exceptions: list[PayrollRunException] = []
        for exception, worker_name in await self.list_exceptions(payroll_run_id, _run=run):
            exceptions.append(exception)
            if worker_name is not None:
                names[exception.worker_id] = worker_name
        return RunDetails(run=run, lines=lines, exceptions=exceptions, worker_names=names)

    async def list_runs(self, limit: int = 50) -> list[PayrollRun]:
        """Most recently created runs first."""
        result = await self.session.execute(
            select(PayrollRun)
            .order_by(PayrollRun.created_at.desc(), PayrollRun.period_start.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_exceptions(
        self,
        payroll_run_id: UUID,
        include_resolved: bool = True,
        _run: PayrollRun | None = None,
    ) -> list[NamedException]:
        """Exceptions ordered by severity (CRIT first), then detection order."""
        if _run is None:
            await self.require_run(payroll_run_id)

        severity_rank = case(
            {severity.value: severity.rank for severity in Severity},
            value=PayrollRunException.severity,
            else_=-1,
        )
        query = _named_exceptions().where(PayrollRunException.payroll_run_id == payroll_run_id)
        if not include_resolved:
            query = query.where(PayrollRunException.resolved.is_(False))
        result = await self.session.execute(
            query.order_by(severity_rank.desc(), PayrollRunException.sequence)
        )
        return [_to_named(row) for row in result.all()]

    # ===== Lifecycle =====

    async def create_run(
        self,
        run_type: str | None,
        period_start: date | None,
        period_end: date | None,
        include_submitted: bool = False,
        created_by: str = "system",
        notes: str | None = None,
    ) -> RunDetails:
        """Create a payroll run in draft status."""
        errors = validate_run_parameters(run_type, period_start, period_end)
        if errors:
            raise RunValidationError(errors)

        run = PayrollRun(
            run_type=run_type,
            period_start=period_start,
            period_end=period_end,
            include_submitted=include_submitted,
            status=PayrollRunStatus.DRAFT.value,
            created_by=created_by,
            notes=notes,
        )
        self.session.add(run)
        try:
            await self.session.flush()
            await self._record_audit(
                run.payroll_run_id,
                "created",
                created_by,
                {
                    "run_type": run_type,
                    "period_start": period_start.isoformat(),
                    "period_end": period_end.isoformat(),
                    "include_submitted": include_submitted,
                },
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Created payroll run %s (%s %s..%s)",
            run.payroll_run_id,
            run_type,
            period_start,
            period_end,
        )
        return await self.get_run_details(run.payroll_run_id)

    async def update_run(
        self,
        payroll_run_id: UUID,
        include_submitted: bool | None = None,
        notes: str | None = None,
        actor: str = "system",
    ) -> RunDetails:
        """Edit run parameters.

        Changing a calculation parameter of a calculated run discards its lines
        and exceptions and returns it to draft, so it must be recalculated
        before it can be finalized. Notes can be edited without a reset.
        """
        lock_key = str(payroll_run_id)
        if not await acquire_run_lock(self.session, lock_key):
            await self.session.rollback()
            raise RunLockedError(payroll_run_id)

        try:
            run = await self.require_run(payroll_run_id)
            if PayrollRunStateMachine.is_terminal(run.status):
                raise InvalidTransitionError(run.status, run.status, "Payroll run is finalized")

            changes: dict[str, Any] = {}
            if include_submitted is not None and include_submitted != run.include_submitted:
                run.include_submitted = include_submitted
                changes["include_submitted"] = include_submitted
            if notes is not None and notes != run.notes:
                run.notes = notes
                changes["notes"] = notes

            if run.status == PayrollRunStatus.CALCULATED and any(
                name in changes for name in CALCULATION_PARAMETERS
            ):
                PayrollRunStateMachine.validate_transition(run.status, PayrollRunStatus.DRAFT)
                await self._discard_results(payroll_run_id)
                run.status = PayrollRunStatus.DRAFT.value
                run.calculated_at = None
                changes["status"] = PayrollRunStatus.DRAFT.value

            if changes:
                await self._record_audit(payroll_run_id, "updated", actor, changes)
                await self.session.commit()
            else:
                # Ends the transaction holding the advisory lock
                await self.session.rollback()
        except Exception:
            await self.session.rollback()
            raise
        finally:
            await release_run_lock(self.session, lock_key)

        if "status" in changes:
            logger.info(
                "Payroll run %s returned to draft after parameter change", payroll_run_id
            )
        return await self.get_run_details(payroll_run_id)

    async def calculate_run(
        self,
        payroll_run_id: UUID,
        activity_threshold: Decimal | None = None,
        mismatch_tolerance_hours: Decimal | None = None,
        actor: str = "system",
    ) -> RunDetails:
        """Recompute every line and exception of a run from current source data.

        The pass reads all inputs, builds the new result set in memory, then
        discards the old rows and writes the new ones in one transaction. A
        failure after the discard rolls back, leaving the previous results.
        Concurrent calculation of the same run is rejected with
        RunLockedError.
        """
        thresholds = self._resolve_thresholds(activity_threshold, mismatch_tolerance_hours)

        lock_key = str(payroll_run_id)
        if not await acquire_run_lock(self.session, lock_key):
            await self.session.rollback()
            logger.warning("Payroll run %s is locked by another calculation", payroll_run_id)
            raise RunLockedError(payroll_run_id)

        stage = "load"
        try:
            run = await self.require_run(payroll_run_id)
            errors = PayrollRunStateMachine.validate_run_for_transition(
                run, PayrollRunStatus.CALCULATED
            )
            if errors:
                raise InvalidTransitionError(
                    run.status, PayrollRunStatus.CALCULATED.value, "; ".join(errors)
                )
            errors = validate_run_parameters(run.run_type, run.period_start, run.period_end)
            if errors:
                raise RunValidationError(errors)

            logger.info("Calculating payroll run %s", payroll_run_id)
            engine = ReconciliationEngine(self.session, thresholds=thresholds)
            inputs = await engine.load_inputs(run)

            stage = "calculate"
            result = engine.calculate(inputs)

            stage = "persist"
            await self._discard_results(payroll_run_id)
            await self._write_results(result)

            run.status = PayrollRunStatus.CALCULATED.value
            run.calculated_at = datetime.now(timezone.utc)
            await self._record_audit(
                payroll_run_id,
                "calculated",
                actor,
                {
                    "lines": len(result.lines),
                    "exceptions": len(result.exceptions),
                    "total_gross": str(result.total_gross),
                    "total_net": str(result.total_net),
                    "activity_threshold": str(thresholds.activity_threshold),
                    "mismatch_tolerance_hours": str(thresholds.mismatch_tolerance_hours),
                },
            )
            await self.session.commit()

        except PayrollRunError:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.exception(
                "Calculation of payroll run %s failed during %s; previous results kept",
                payroll_run_id,
                stage,
            )
            raise CalculationError(payroll_run_id, stage, e) from e
        finally:
            await release_run_lock(self.session, lock_key)

        logger.info(
            "Calculated payroll run %s: %d lines, %d exceptions, gross %s",
            payroll_run_id,
            len(result.lines),
            len(result.exceptions),
            result.total_gross,
        )
        return await self.get_run_details(payroll_run_id)

    async def finalize_run(self, payroll_run_id: UUID, finalized_by: str = "system") -> RunDetails:
        """Finalize a calculated run; its lines become authoritative."""
        lock_key = str(payroll_run_id)
        if not await acquire_run_lock(self.session, lock_key):
            await self.session.rollback()
            raise RunLockedError(payroll_run_id)

        try:
            run = await self.require_run(payroll_run_id)
            errors = PayrollRunStateMachine.validate_run_for_transition(
                run, PayrollRunStatus.FINALIZED
            )
            if errors:
                raise InvalidTransitionError(
                    run.status, PayrollRunStatus.FINALIZED.value, "; ".join(errors)
                )

            run.status = PayrollRunStatus.FINALIZED.value
            run.finalized_at = datetime.now(timezone.utc)
            run.finalized_by = finalized_by
            await self._record_audit(payroll_run_id, "finalized", finalized_by)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        finally:
            await release_run_lock(self.session, lock_key)

        logger.info("Finalized payroll run %s by %s", payroll_run_id, finalized_by)
        return await self.get_run_details(payroll_run_id)

    async def resolve_exception(
        self,
        payroll_run_id: UUID,
        exception_id: UUID,
        resolved_by: str = "system",
    ) -> NamedException:
        """Mark an exception as reviewed.

        Resolution lasts until the next calculation regenerates the findings.
        """
        await self.require_run(payroll_run_id)
        result = await self.session.execute(
            _named_exceptions().where(
                PayrollRunException.payroll_run_id == payroll_run_id,
                PayrollRunException.payroll_run_exception_id == exception_id,
            )
        )
        row = result.one_or_none()
        if row is None:
            raise ExceptionNotFoundError(payroll_run_id, exception_id)
        named = _to_named(row)
        exception = named.exception

        if not exception.resolved:
            exception.resolved = True
            exception.resolved_by = resolved_by
            exception.resolved_at = datetime.now(timezone.utc)
            try:
                await self._record_audit(
                    payroll_run_id,
                    "exception_resolved",
                    resolved_by,
                    {
                        "exception_id": str(exception_id),
                        "exception_type": exception.exception_type,
                    },
                )
                await self.session.commit()
            except Exception:
                await self.session.rollback()
                raise

        return named

    # ===== Internals =====

    def _resolve_thresholds(
        self,
        activity_threshold: Decimal | None,
        mismatch_tolerance_hours: Decimal | None,
    ) -> ReconciliationThresholds:
        if activity_threshold is None:
            activity_threshold = self.settings.activity_threshold
        if mismatch_tolerance_hours is None:
            mismatch_tolerance_hours = self.settings.mismatch_tolerance_hours

        errors: list[str] = []
        if not 0 <= activity_threshold <= 100:
            errors.append("activity_threshold must be between 0 and 100")
        if mismatch_tolerance_hours < 0:
            errors.append("mismatch_tolerance_hours must not be negative")
        if errors:
            raise RunValidationError(errors)

        return ReconciliationThresholds(
            activity_threshold=Decimal(activity_threshold),
            mismatch_tolerance_hours=Decimal(mismatch_tolerance_hours),
        )

    async def _discard_results(self, payroll_run_id: UUID) -> None:
        """Delete the run's current lines and exceptions (not yet committed)."""
        for model in (PayrollRunException, PayrollRunLine):
            result = await self.session.execute(
                select(model).where(model.payroll_run_id == payroll_run_id)
            )
            for row in result.scalars().all():
                await self.session.delete(row)
        await self.session.flush()

    async def _write_results(self, result: RunCalculationResult) -> None:
        """Insert the freshly calculated lines and exceptions."""
        self.session.add_all(
            PayrollRunLine(
                payroll_run_line_id=line.line_id,
                payroll_run_id=result.payroll_run_id,
                worker_id=line.worker_id,
                compensation_model=line.compensation_model.value,
                expected_work_days=line.expected_work_days,
                expected_hours=line.expected_hours,
                time_off_days=line.time_off_days,
                holiday_days=line.holiday_days,
                approved_hours=line.approved_hours,
                submitted_hours=line.submitted_hours,
                payable_hours=line.payable_hours,
                logged_hours=line.logged_hours,
                internal_work_hours=line.internal_work_hours,
                external_tracked_hours=line.external_tracked_hours,
                avg_activity_percent=line.avg_activity_percent,
                reimbursements=line.reimbursements,
                deductions=line.deductions,
                catch_up_hours=line.catch_up_hours,
                gross_pay=line.gross_pay,
                net_pay=line.net_pay,
                inputs_fingerprint=line.inputs_fingerprint,
            )
            for line in result.lines
        )
        self.session.add_all(
            PayrollRunException(
                payroll_run_exception_id=finding.exception_id,
                payroll_run_id=result.payroll_run_id,
                worker_id=finding.worker_id,
                sequence=finding.sequence,
                exception_type=finding.exception_type.value,
                severity=finding.severity.value,
                work_date=finding.work_date,
                source=finding.source,
                portal_hours=finding.portal_hours,
                external_hours=finding.external_hours,
                details=finding.details,
                resolved=False,
            )
            for finding in result.exceptions
        )
        await self.session.flush()

    async def _record_audit(
        self,
        payroll_run_id: UUID,
        action: str,
        actor: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Record an audit event for a payroll run action."""
        event = PayrollRunAuditEvent(
            payroll_run_id=payroll_run_id,
            actor=actor,
            action=action,
            details_json=details,
        )
        self.session.add(event)
