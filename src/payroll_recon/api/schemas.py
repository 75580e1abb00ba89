"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Payroll Run schemas
# ============================================================================


class PayrollRunCreate(BaseModel):
    """Schema for creating a new payroll run.

    Period ordering and run type are checked by the service so the error
    carries every problem at once.
    """

    run_type: str = "regular"
    period_start: date
    period_end: date
    include_submitted: bool = False
    notes: str | None = None


class PayrollRunUpdate(BaseModel):
    """Schema for editing a payroll run before it is finalized."""

    include_submitted: bool | None = None
    notes: str | None = None


class CalculateRequest(BaseModel):
    """Optional per-calculation threshold overrides."""

    activity_threshold: Decimal | None = Field(default=None, ge=0, le=100)
    mismatch_tolerance_hours: Decimal | None = Field(default=None, ge=0)


class PayrollRunResponse(BaseModel):
    """Schema for payroll run response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_run_id: UUID
    run_type: str
    period_start: date
    period_end: date
    include_submitted: bool
    status: str
    notes: str | None = None
    created_by: str
    created_at: datetime
    updated_at: datetime
    calculated_at: datetime | None = None
    finalized_at: datetime | None = None
    finalized_by: str | None = None


class PayrollRunListResponse(BaseModel):
    """Schema for listing payroll runs."""

    items: list[PayrollRunResponse]
    total: int


# ============================================================================
# Line and exception schemas
# ============================================================================


class PayrollRunLineResponse(BaseModel):
    """Per-worker figures of a calculated run."""

    model_config = ConfigDict(from_attributes=True)

    payroll_run_line_id: UUID
    worker_id: UUID
    worker_name: str | None = None
    compensation_model: str
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
    avg_activity_percent: Decimal | None = None
    reimbursements: Decimal
    deductions: Decimal
    catch_up_hours: Decimal
    gross_pay: Decimal
    net_pay: Decimal


class PayrollRunExceptionResponse(BaseModel):
    """A discrepancy surfaced for payroll review."""

    model_config = ConfigDict(from_attributes=True)

    payroll_run_exception_id: UUID
    worker_id: UUID | None = None
    worker_name: str | None = None
    sequence: int
    exception_type: str
    severity: str
    work_date: date | None = None
    source: str | None = None
    portal_hours: Decimal | None = None
    external_hours: Decimal | None = None
    details: str | None = None
    resolved: bool
    resolved_by: str | None = None
    resolved_at: datetime | None = None


class PayrollRunExceptionListResponse(BaseModel):
    items: list[PayrollRunExceptionResponse]
    total: int


class PayrollRunDetailResponse(BaseModel):
    """A run with its current lines, exceptions and totals."""

    run: PayrollRunResponse
    lines: list[PayrollRunLineResponse]
    exceptions: list[PayrollRunExceptionResponse]
    total_gross: Decimal
    total_net: Decimal


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
