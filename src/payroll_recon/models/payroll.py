"""Payroll run, line, exception and audit models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from payroll_recon.models.base import Base, TimestampMixin


class PayrollRun(Base, TimestampMixin):
    """Payroll run container for one period."""

    __tablename__ = "payroll_run"

    payroll_run_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    run_type: Mapped[str] = mapped_column(String, nullable=False, default="regular")
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    include_submitted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String, nullable=False, default="system")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    calculated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    finalized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    finalized_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "run_type IN ('regular', 'offcycle', 'correction')",
            name="payroll_run_type_check",
        ),
        CheckConstraint(
            "status IN ('draft', 'calculated', 'finalized')",
            name="payroll_run_status_check",
        ),
        CheckConstraint("period_end >= period_start", name="payroll_run_dates_check"),
    )
    __mapper_args__ = {"eager_defaults": True}


class PayrollRunLine(Base):
    """Per-worker result of a calculation pass.

    Rows carry no creation timestamp: an unchanged recalculation must
    reproduce them exactly.
    """

    __tablename__ = "payroll_run_line"

    payroll_run_line_id: Mapped[UUID] = mapped_column(primary_key=True)
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id", ondelete="CASCADE"),
        nullable=False,
    )
    worker_id: Mapped[UUID] = mapped_column(
        ForeignKey("worker.worker_id", ondelete="CASCADE"),
        nullable=False,
    )
    compensation_model: Mapped[str] = mapped_column(String, nullable=False)

    expected_work_days: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    expected_hours: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    time_off_days: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    holiday_days: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)

    approved_hours: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    submitted_hours: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    payable_hours: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    logged_hours: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    internal_work_hours: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)

    external_tracked_hours: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    avg_activity_percent: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)

    reimbursements: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    deductions: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    catch_up_hours: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)

    gross_pay: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    net_pay: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)

    inputs_fingerprint: Mapped[str] = mapped_column(String(32), nullable=False)

    __table_args__ = (
        UniqueConstraint("payroll_run_id", "worker_id", name="payroll_run_line_worker_unique"),
        CheckConstraint(
            "compensation_model IN ('hourly', 'salaried')",
            name="payroll_run_line_model_check",
        ),
    )


class PayrollRunException(Base):
    """Discrepancy surfaced for payroll review; worker_id is null for run-level findings."""

    __tablename__ = "payroll_run_exception"

    payroll_run_exception_id: Mapped[UUID] = mapped_column(primary_key=True)
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id", ondelete="CASCADE"),
        nullable=False,
    )
    worker_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("worker.worker_id", ondelete="CASCADE"),
        nullable=True,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    exception_type: Mapped[str] = mapped_column(String, nullable=False)
    severity: Mapped[str] = mapped_column(String, nullable=False, default="INFO")
    work_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    source: Mapped[str | None] = mapped_column(String, nullable=True)
    portal_hours: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    external_hours: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    resolved_by: Mapped[str | None] = mapped_column(String, nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "severity IN ('INFO', 'WARN', 'CRIT')",
            name="payroll_run_exception_severity_check",
        ),
        CheckConstraint(
            "exception_type IN ('HOURS_MISMATCH', 'LOW_ACTIVITY', "
            "'MISSING_PORTAL_ALLOCATION', 'UNASSIGNED_EXTERNAL_TIME')",
            name="payroll_run_exception_type_check",
        ),
    )


class PayrollRunAuditEvent(Base, TimestampMixin):
    """Audit trail of lifecycle actions; survives recalculation."""

    __tablename__ = "payroll_run_audit_event"

    audit_event_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id", ondelete="CASCADE"),
        nullable=False,
    )
    actor: Mapped[str] = mapped_column(String, nullable=False, default="system")
    action: Mapped[str] = mapped_column(String, nullable=False)
    details_json: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
