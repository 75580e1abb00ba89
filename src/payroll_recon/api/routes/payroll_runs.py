"""Payroll run API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from payroll_recon.api.dependencies import Actor, RunService
from payroll_recon.api.schemas import (
    CalculateRequest,
    ErrorResponse,
    PayrollRunCreate,
    PayrollRunDetailResponse,
    PayrollRunExceptionListResponse,
    PayrollRunExceptionResponse,
    PayrollRunLineResponse,
    PayrollRunListResponse,
    PayrollRunResponse,
    PayrollRunUpdate,
)
from payroll_recon.models import PayrollRunException
from payroll_recon.services import RunDetails

router = APIRouter(prefix="/payroll-runs", tags=["payroll-runs"])


def _exception_response(
    exception: PayrollRunException, worker_name: str | None
) -> PayrollRunExceptionResponse:
    resp = PayrollRunExceptionResponse.model_validate(exception)
    resp.worker_name = worker_name
    return resp


def _detail_response(details: RunDetails) -> PayrollRunDetailResponse:
    names = details.worker_names
    lines = []
    for line in details.lines:
        resp = PayrollRunLineResponse.model_validate(line)
        resp.worker_name = names.get(line.worker_id)
        lines.append(resp)

    return PayrollRunDetailResponse(
        run=PayrollRunResponse.model_validate(details.run),
        lines=lines,
        exceptions=[
            _exception_response(e, names.get(e.worker_id)) for e in details.exceptions
        ],
        total_gross=sum((line.gross_pay for line in details.lines), start=0),
        total_net=sum((line.net_pay for line in details.lines), start=0),
    )


# ============================================================================
# Payroll Run CRUD
# ============================================================================


@router.post(
    "",
    response_model=PayrollRunDetailResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
async def create_payroll_run(
    service: RunService,
    actor: Actor,
    payload: PayrollRunCreate,
) -> PayrollRunDetailResponse:
    """Create a new payroll run in draft status."""
    details = await service.create_run(
        run_type=payload.run_type,
        period_start=payload.period_start,
        period_end=payload.period_end,
        include_submitted=payload.include_submitted,
        created_by=actor,
        notes=payload.notes,
    )
    return _detail_response(details)


@router.get("", response_model=PayrollRunListResponse)
async def list_payroll_runs(
    service: RunService,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
) -> PayrollRunListResponse:
    """List payroll runs, newest first."""
    runs = await service.list_runs(limit=limit)
    return PayrollRunListResponse(
        items=[PayrollRunResponse.model_validate(run) for run in runs],
        total=len(runs),
    )


@router.get(
    "/{payroll_run_id}",
    response_model=PayrollRunDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payroll_run(
    service: RunService,
    payroll_run_id: Annotated[UUID, Path()],
) -> PayrollRunDetailResponse:
    """Get a payroll run with its lines and exceptions."""
    return _detail_response(await service.get_run_details(payroll_run_id))


@router.patch(
    "/{payroll_run_id}",
    response_model=PayrollRunDetailResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_payroll_run(
    service: RunService,
    actor: Actor,
    payroll_run_id: Annotated[UUID, Path()],
    payload: PayrollRunUpdate,
) -> PayrollRunDetailResponse:
    """Edit run parameters. Changing include_submitted returns a calculated run to draft."""
    details = await service.update_run(
        payroll_run_id,
        include_submitted=payload.include_submitted,
        notes=payload.notes,
        actor=actor,
    )
    return _detail_response(details)


# ============================================================================
# Payroll Run Lifecycle
# ============================================================================


@router.post(
    "/{payroll_run_id}/calculate",
    response_model=PayrollRunDetailResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def calculate_payroll_run(
    service: RunService,
    actor: Actor,
    payroll_run_id: Annotated[UUID, Path()],
    payload: CalculateRequest | None = None,
) -> PayrollRunDetailResponse:
    """Recompute all lines and exceptions. Idempotent and deterministic."""
    payload = payload or CalculateRequest()
    details = await service.calculate_run(
        payroll_run_id,
        activity_threshold=payload.activity_threshold,
        mismatch_tolerance_hours=payload.mismatch_tolerance_hours,
        actor=actor,
    )
    return _detail_response(details)


@router.post(
    "/{payroll_run_id}/finalize",
    response_model=PayrollRunDetailResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def finalize_payroll_run(
    service: RunService,
    actor: Actor,
    payroll_run_id: Annotated[UUID, Path()],
) -> PayrollRunDetailResponse:
    """Finalize a calculated payroll run."""
    return _detail_response(await service.finalize_run(payroll_run_id, finalized_by=actor))


# ============================================================================
# Exceptions
# ============================================================================


@router.get(
    "/{payroll_run_id}/exceptions",
    response_model=PayrollRunExceptionListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_payroll_run_exceptions(
    service: RunService,
    payroll_run_id: Annotated[UUID, Path()],
    include_resolved: bool = True,
) -> PayrollRunExceptionListResponse:
    """List exceptions, most severe first."""
    exceptions = await service.list_exceptions(payroll_run_id, include_resolved=include_resolved)
    return PayrollRunExceptionListResponse(
        items=[_exception_response(e, name) for e, name in exceptions],
        total=len(exceptions),
    )


@router.post(
    "/{payroll_run_id}/exceptions/{exception_id}/resolve",
    response_model=PayrollRunExceptionResponse,
    responses={404: {"model": ErrorResponse}},
)
async def resolve_payroll_run_exception(
    service: RunService,
    actor: Actor,
    payroll_run_id: Annotated[UUID, Path()],
    exception_id: Annotated[UUID, Path()],
) -> PayrollRunExceptionResponse:
    """Mark an exception as reviewed."""
    exception, worker_name = await service.resolve_exception(
        payroll_run_id, exception_id, resolved_by=actor
    )
    return _exception_response(exception, worker_name)
