"""Type definitions for the payroll computation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from attendance_payroll.models import PayrollRecord


class PaymentStatus(str, Enum):
    """Payment status of a payroll record."""

    UNPAID = "unpaid"
    PAID = "paid"
    PARTIALLY_PAID = "partially-paid"
    CANCELLED = "cancelled"


class AttendanceStatus(str, Enum):
    """Attendance fact statuses."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    HALF_DAY = "half-day"
    HOLIDAY = "holiday"
    LEAVE = "leave"


class ApprovalStatus(str, Enum):
    """Overtime approval statuses. Only approved overtime is payable."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PeriodType(str, Enum):
    """Pay cycle lengths."""

    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    SEMI_MONTHLY = "semi-monthly"
    MONTHLY = "monthly"


class DeductionCategory(str, Enum):
    """Deduction categories, each rolled up into one record field."""

    SSS = "sss"
    PHILHEALTH = "philhealth"
    PAGIBIG = "pag-ibig"
    TAX = "tax"
    LOAN = "loan"
    ADVANCE = "advance"
    OTHER = "other"

    @property
    def record_field(self) -> str:
        """Name of the PayrollRecord column holding this category's total."""
        return DEDUCTION_FIELDS[self]


DEDUCTION_FIELDS: dict[DeductionCategory, str] = {
    DeductionCategory.SSS: "sss_deduction",
    DeductionCategory.PHILHEALTH: "philhealth_deduction",
    DeductionCategory.PAGIBIG: "pagibig_deduction",
    DeductionCategory.TAX: "tax_deduction",
    DeductionCategory.LOAN: "loan_deduction",
    DeductionCategory.ADVANCE: "advance_deduction",
    DeductionCategory.OTHER: "other_deductions",
}


class DeductionSource(str, Enum):
    """Who wrote a deduction row."""

    POLICY = "policy"
    MANUAL = "manual"


@dataclass
class AttendanceSummary:
    """Attendance facts for one employee over a period range."""

    days_present: Decimal = Decimal("0")
    days_absent: Decimal = Decimal("0")
    days_late: Decimal = Decimal("0")
    days_half_day: Decimal = Decimal("0")
    hours_worked: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    late_minutes: int = 0
    fact_ids: list[int] = field(default_factory=list)

    @property
    def payable_days(self) -> Decimal:
        """Days paid at the daily rate; a half day pays half."""
        return self.days_present + self.days_half_day * Decimal("0.5")


@dataclass
class OvertimeSummary:
    """Approved, unclaimed overtime for one employee over a period range."""

    total_hours: Decimal = Decimal("0")
    total_pay: Decimal = Decimal("0")
    fact_ids: list[int] = field(default_factory=list)


@dataclass
class SupplementalEarnings:
    """Earnings that do not come from attendance or overtime facts."""

    holiday_pay: Decimal = Decimal("0")
    night_diff_pay: Decimal = Decimal("0")
    allowance: Decimal = Decimal("0")
    bonus: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return self.holiday_pay + self.night_diff_pay + self.allowance + self.bonus


@dataclass
class DeductionInput:
    """A manual deduction to add to a payroll record."""

    type: str
    amount: Decimal
    code: str | None = None
    description: str | None = None
    percentage: Decimal | None = None
    is_recurring: bool = False
    applied_date: date | None = None
    note: str | None = None


@dataclass
class PaymentInfo:
    """Details recorded when a payroll record is marked as paid."""

    payment_method: str | None = None
    payment_reference: str | None = None
    remarks: str | None = None


@dataclass
class BatchFailure:
    """One employee that could not be computed in a batch."""

    employee_id: int
    reason: str
    code: str | None = None


@dataclass
class BatchResult:
    """Outcome of computing a whole period."""

    period_id: int
    succeeded: list[PayrollRecord] = field(default_factory=list)
    failed: list[BatchFailure] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return len(self.failed) > 0
