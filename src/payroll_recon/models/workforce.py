"""Source data read by the reconciliation engine.

Workers, internal timecard rows, imported external time, adjustments and the
holiday calendar are owned by other parts of the system. The engine only
reads them.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from payroll_recon.models.base import Base, TimestampMixin


class Worker(Base, TimestampMixin):
    """Worker roster entry with compensation terms."""

    __tablename__ = "worker"

    worker_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    work_email: Mapped[str | None] = mapped_column(String, nullable=True)
    compensation_model: Mapped[str] = mapped_column(String, nullable=False, default="hourly")
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    flat_rate: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "compensation_model IN ('hourly', 'salaried')",
            name="worker_compensation_model_check",
        ),
    )

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class InternalTimeRecord(Base, TimestampMixin):
    """One timecard row: worker, date and client bucket."""

    __tablename__ = "internal_time_record"

    internal_time_record_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    worker_id: Mapped[UUID] = mapped_column(
        ForeignKey("worker.worker_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    client_id: Mapped[UUID | None] = mapped_column(nullable=True)
    approval_status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    client_facing_hours: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    non_client_facing_hours: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    other_task_hours: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "approval_status IN ('draft', 'submitted', 'approved', 'rejected')",
            name="internal_time_record_status_check",
        ),
    )


class ExternalTimeRecord(Base, TimestampMixin):
    """Imported third-party tracked time; worker link may be missing."""

    __tablename__ = "external_time_record"

    external_time_record_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    worker_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("worker.worker_id", ondelete="SET NULL"),
        nullable=True,
    )
    source: Mapped[str] = mapped_column(String, nullable=False, default="external")
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    hours: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False, default=Decimal("0"))
    activity_percent: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)


class Adjustment(Base, TimestampMixin):
    """Ad-hoc reimbursement, deduction or catch-up hours for a worker."""

    __tablename__ = "payroll_adjustment"

    adjustment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    worker_id: Mapped[UUID] = mapped_column(
        ForeignKey("worker.worker_id", ondelete="CASCADE"),
        nullable=False,
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    adjustment_type: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    hours: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "adjustment_type IN ('REIMBURSEMENT', 'DEDUCTION', 'CATCHUP')",
            name="payroll_adjustment_type_check",
        ),
        CheckConstraint("period_end >= period_start", name="payroll_adjustment_dates_check"),
    )


class Holiday(Base):
    """Unpaid, non-business calendar date."""

    __tablename__ = "holiday"

    holiday_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    holiday_date: Mapped[date] = mapped_column(Date, nullable=False)
    name: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (UniqueConstraint("holiday_date", name="holiday_date_unique"),)


class WorkBucketAssignment(Base, TimestampMixin):
    """Maps a special work bucket role to the client that represents it."""

    __tablename__ = "work_bucket_assignment"

    role: Mapped[str] = mapped_column(String, primary_key=True)
    client_id: Mapped[UUID] = mapped_column(nullable=False)

    __table_args__ = (
        CheckConstraint(
            "role IN ('time_off', 'internal_work')",
            name="work_bucket_assignment_role_check",
        ),
    )
