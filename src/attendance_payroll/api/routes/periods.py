"""Payroll period API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Body, Path, Query, Response, status

from attendance_payroll.api.dependencies import Actor, Payroll
from attendance_payroll.api.schemas import (
    BatchResponse,
    ComputeRequest,
    ErrorResponse,
    NextPeriodResponse,
    PeriodCreate,
    PeriodResponse,
    PeriodUpdate,
    RecordResponse,
)

router = APIRouter(prefix="/periods", tags=["periods"])

ERRORS = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


# ============================================================================
# Period CRUD
# ============================================================================


@router.get("", response_model=list[PeriodResponse])
async def list_periods(
    payroll: Payroll,
    period_status: Annotated[str | None, Query(alias="status")] = None,
) -> list[PeriodResponse]:
    """List payroll periods ordered by start date."""
    periods = await payroll.list_periods(period_status)
    return [PeriodResponse.model_validate(p) for p in periods]


@router.post(
    "",
    response_model=PeriodResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def create_period(payroll: Payroll, actor: Actor, payload: PeriodCreate) -> PeriodResponse:
    """Create a payroll period in open status."""
    period = await payroll.create_period(payload.to_period_data(), actor=actor)
    return PeriodResponse.model_validate(period)


@router.get("/next", response_model=NextPeriodResponse)
async def suggest_next_period(
    payroll: Payroll,
    period_type: Annotated[str, Query()] = "semi-monthly",
) -> NextPeriodResponse:
    """Suggest dates for the period after the latest one."""
    dates = await payroll.suggest_next_period(period_type)
    return NextPeriodResponse.model_validate(dates)


@router.get("/{period_id}", response_model=PeriodResponse, responses=ERRORS)
async def get_period(payroll: Payroll, period_id: Annotated[int, Path()]) -> PeriodResponse:
    """Get a payroll period with its totals."""
    return PeriodResponse.model_validate(await payroll.get_period(period_id))


@router.patch("/{period_id}", response_model=PeriodResponse, responses=ERRORS)
async def update_period(
    payroll: Payroll,
    actor: Actor,
    period_id: Annotated[int, Path()],
    payload: PeriodUpdate,
) -> PeriodResponse:
    """Edit an open or processing period."""
    changes = payload.model_dump(exclude_unset=True)
    period = await payroll.update_period(period_id, changes, actor=actor)
    return PeriodResponse.model_validate(period)


@router.delete(
    "/{period_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=ERRORS,
)
async def delete_period(
    payroll: Payroll,
    actor: Actor,
    period_id: Annotated[int, Path()],
) -> Response:
    """Delete an open period without records."""
    await payroll.delete_period(period_id, actor=actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Lifecycle
# ============================================================================


@router.post("/{period_id}/lock", response_model=PeriodResponse, responses=ERRORS)
async def lock_period(
    payroll: Payroll,
    actor: Actor,
    period_id: Annotated[int, Path()],
) -> PeriodResponse:
    """Lock a period once every record is computed."""
    return PeriodResponse.model_validate(await payroll.lock_period(period_id, actor=actor))


@router.post("/{period_id}/close", response_model=PeriodResponse, responses=ERRORS)
async def close_period(
    payroll: Payroll,
    actor: Actor,
    period_id: Annotated[int, Path()],
) -> PeriodResponse:
    """Close a locked period once every record is paid."""
    return PeriodResponse.model_validate(await payroll.close_period(period_id, actor=actor))


@router.post("/{period_id}/reopen", response_model=PeriodResponse, responses=ERRORS)
async def reopen_period(
    payroll: Payroll,
    actor: Actor,
    period_id: Annotated[int, Path()],
) -> PeriodResponse:
    """Reopen a processing or locked period."""
    return PeriodResponse.model_validate(await payroll.reopen_period(period_id, actor=actor))


@router.post("/{period_id}/refresh-totals", response_model=PeriodResponse, responses=ERRORS)
async def refresh_totals(payroll: Payroll, period_id: Annotated[int, Path()]) -> PeriodResponse:
    """Recompute the period's totals from its records."""
    return PeriodResponse.model_validate(await payroll.refresh_period_totals(period_id))


# ============================================================================
# Computation
# ============================================================================


@router.post("/{period_id}/compute", response_model=BatchResponse, responses=ERRORS)
async def compute_period(
    payroll: Payroll,
    actor: Actor,
    period_id: Annotated[int, Path()],
) -> BatchResponse:
    """Compute records for every active employee in the period."""
    result = await payroll.compute_payroll_batch(period_id, actor=actor)
    return BatchResponse.model_validate(result)


@router.post(
    "/{period_id}/employees/{employee_id}/compute",
    response_model=RecordResponse,
    responses=ERRORS,
)
async def compute_employee(
    payroll: Payroll,
    actor: Actor,
    period_id: Annotated[int, Path()],
    employee_id: Annotated[int, Path()],
    payload: Annotated[ComputeRequest | None, Body()] = None,
) -> RecordResponse:
    """Compute or recompute one employee's record for the period."""
    earnings = payload.to_earnings() if payload is not None else None
    record = await payroll.compute_payroll(employee_id, period_id, earnings, actor=actor)
    return RecordResponse.model_validate(record)


@router.get("/{period_id}/records", response_model=list[RecordResponse], responses=ERRORS)
async def list_period_records(
    payroll: Payroll,
    period_id: Annotated[int, Path()],
) -> list[RecordResponse]:
    """List the period's payroll records."""
    records = await payroll.list_period_records(period_id)
    return [RecordResponse.model_validate(r) for r in records]
