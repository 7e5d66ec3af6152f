"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from attendance_payroll.calculators.types import (
    DeductionInput,
    PaymentInfo,
    SupplementalEarnings,
)
from attendance_payroll.services.period_service import PeriodData


# ============================================================================
# Period schemas
# ============================================================================


class PeriodCreate(BaseModel):
    """Schema for creating a payroll period."""

    start_date: date
    end_date: date
    pay_date: date
    period_type: str = "semi-monthly"
    name: str | None = None
    working_days: int = 0
    notes: str | None = None

    def to_period_data(self) -> PeriodData:
        return PeriodData(**self.model_dump())


class PeriodUpdate(BaseModel):
    """Schema for editing a payroll period. Only set fields are changed."""

    name: str | None = None
    period_type: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    pay_date: date | None = None
    working_days: int | None = None
    notes: str | None = None


class PeriodResponse(BaseModel):
    """Schema for payroll period response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    period_type: str
    start_date: date
    end_date: date
    pay_date: date
    working_days: int
    status: str
    locked_at: datetime | None = None
    closed_at: datetime | None = None
    notes: str | None = None
    total_employees: int
    paid_employees: int
    total_gross_pay: Decimal
    total_deductions: Decimal
    total_net_pay: Decimal
    created_at: datetime
    updated_at: datetime


class NextPeriodResponse(BaseModel):
    """Suggested dates for the next payroll period."""

    model_config = ConfigDict(from_attributes=True)

    period_type: str
    start_date: date
    end_date: date
    pay_date: date
    name: str


# ============================================================================
# Record schemas
# ============================================================================


class ComputeRequest(BaseModel):
    """Optional supplemental earnings for a computation.

    Omit the body (or every field) to keep a recomputed record's existing
    supplemental earnings.
    """

    holiday_pay: Decimal | None = None
    night_diff_pay: Decimal | None = None
    allowance: Decimal | None = None
    bonus: Decimal | None = None

    def to_earnings(self) -> SupplementalEarnings | None:
        values = self.model_dump(exclude_none=True)
        if not values:
            return None
        return SupplementalEarnings(**values)


class RecordResponse(BaseModel):
    """Schema for payroll record response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    period_id: int
    days_present: Decimal
    days_absent: Decimal
    days_late: Decimal
    days_half_day: Decimal
    hours_worked: Decimal
    late_minutes: int
    daily_rate: Decimal
    hourly_rate: Decimal
    overtime_rate: Decimal
    basic_pay: Decimal
    overtime_hours: Decimal
    overtime_pay: Decimal
    holiday_pay: Decimal
    night_diff_pay: Decimal
    allowance: Decimal
    bonus: Decimal
    gross_pay: Decimal
    sss_deduction: Decimal
    philhealth_deduction: Decimal
    pagibig_deduction: Decimal
    tax_deduction: Decimal
    loan_deduction: Decimal
    advance_deduction: Decimal
    other_deductions: Decimal
    deductions_total: Decimal
    net_pay: Decimal
    computed_at: datetime | None = None
    payment_status: str
    paid_at: datetime | None = None
    payment_method: str | None = None
    payment_reference: str | None = None
    remarks: str | None = None


class BatchFailureResponse(BaseModel):
    """One employee that failed in a batch computation."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: int
    reason: str
    code: str | None = None


class BatchResponse(BaseModel):
    """Schema for batch computation response."""

    model_config = ConfigDict(from_attributes=True)

    period_id: int
    succeeded: list[RecordResponse]
    failed: list[BatchFailureResponse]


class PaymentRequest(BaseModel):
    """Schema for marking a record as paid."""

    payment_method: str | None = None
    payment_reference: str | None = None
    remarks: str | None = None

    def to_payment_info(self) -> PaymentInfo:
        return PaymentInfo(**self.model_dump())


class CancelRequest(BaseModel):
    """Schema for cancelling a record."""

    reason: str | None = None


# ============================================================================
# Deduction schemas
# ============================================================================


class DeductionCreate(BaseModel):
    """Schema for adding a manual deduction."""

    type: str
    amount: Decimal
    code: str | None = None
    description: str | None = None
    percentage: Decimal | None = None
    is_recurring: bool = False
    applied_date: date | None = None
    note: str | None = None

    def to_deduction_input(self) -> DeductionInput:
        return DeductionInput(**self.model_dump())


class DeductionResponse(BaseModel):
    """Schema for deduction response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    payroll_record_id: int
    type: str
    amount: Decimal
    code: str | None = None
    description: str | None = None
    percentage: Decimal | None = None
    is_recurring: bool
    applied_date: date | None = None
    note: str | None = None
    source: str
    created_at: datetime


# ============================================================================
# Audit and error schemas
# ============================================================================


class AuditEventResponse(BaseModel):
    """Schema for audit event response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    entity_type: str
    entity_id: int
    action: str
    actor: str
    before_json: dict[str, Any] | None = None
    after_json: dict[str, Any] | None = None
    created_at: datetime


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    retryable: bool = False
    errors: list[str] | None = Field(default=None)
