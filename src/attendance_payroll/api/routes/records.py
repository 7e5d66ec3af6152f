"""Payroll record, deduction and payment API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Body, Path, Response, status

from attendance_payroll.api.dependencies import Actor, Payroll
from attendance_payroll.api.schemas import (
    AuditEventResponse,
    CancelRequest,
    DeductionCreate,
    DeductionResponse,
    ErrorResponse,
    PaymentRequest,
    RecordResponse,
)

router = APIRouter(tags=["records"])

ERRORS = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


@router.get("/records/{record_id}", response_model=RecordResponse, responses=ERRORS)
async def get_record(payroll: Payroll, record_id: Annotated[int, Path()]) -> RecordResponse:
    """Get a payroll record."""
    return RecordResponse.model_validate(await payroll.get_record(record_id))


@router.delete(
    "/records/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=ERRORS,
)
async def delete_record(
    payroll: Payroll,
    actor: Actor,
    record_id: Annotated[int, Path()],
) -> Response:
    """Delete an unpaid record and release its claimed facts."""
    await payroll.delete_record(record_id, actor=actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/records/{record_id}/deductions",
    response_model=list[DeductionResponse],
    responses=ERRORS,
)
async def list_deductions(
    payroll: Payroll,
    record_id: Annotated[int, Path()],
) -> list[DeductionResponse]:
    """List a record's deductions, policy and manual."""
    deductions = await payroll.get_record_deductions(record_id)
    return [DeductionResponse.model_validate(d) for d in deductions]


@router.post(
    "/records/{record_id}/deductions",
    response_model=RecordResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def add_deduction(
    payroll: Payroll,
    actor: Actor,
    record_id: Annotated[int, Path()],
    payload: DeductionCreate,
) -> RecordResponse:
    """Add a manual deduction; returns the recalculated record."""
    record = await payroll.add_deduction(record_id, payload.to_deduction_input(), actor=actor)
    return RecordResponse.model_validate(record)


@router.delete("/deductions/{deduction_id}", response_model=RecordResponse, responses=ERRORS)
async def remove_deduction(
    payroll: Payroll,
    actor: Actor,
    deduction_id: Annotated[int, Path()],
) -> RecordResponse:
    """Remove a deduction; returns the recalculated record."""
    record = await payroll.remove_deduction(deduction_id, actor=actor)
    return RecordResponse.model_validate(record)


@router.post("/records/{record_id}/pay", response_model=RecordResponse, responses=ERRORS)
async def mark_as_paid(
    payroll: Payroll,
    actor: Actor,
    record_id: Annotated[int, Path()],
    payload: Annotated[PaymentRequest | None, Body()] = None,
) -> RecordResponse:
    """Mark a record as paid."""
    payment = payload.to_payment_info() if payload is not None else None
    record = await payroll.mark_as_paid(record_id, payment, actor=actor)
    return RecordResponse.model_validate(record)


@router.post("/records/{record_id}/cancel", response_model=RecordResponse, responses=ERRORS)
async def cancel_record(
    payroll: Payroll,
    actor: Actor,
    record_id: Annotated[int, Path()],
    payload: Annotated[CancelRequest | None, Body()] = None,
) -> RecordResponse:
    """Cancel an unpaid record."""
    reason = payload.reason if payload is not None else None
    record = await payroll.cancel_record(record_id, reason, actor=actor)
    return RecordResponse.model_validate(record)


@router.get(
    "/records/{record_id}/audit",
    response_model=list[AuditEventResponse],
    responses=ERRORS,
)
async def record_audit_trail(
    payroll: Payroll,
    record_id: Annotated[int, Path()],
) -> list[AuditEventResponse]:
    """Audit events for a record, oldest first."""
    await payroll.get_record(record_id)
    events = await payroll.get_audit_trail("payroll_record", record_id)
    return [AuditEventResponse.model_validate(e) for e in events]
