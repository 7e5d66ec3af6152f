"""Payroll period, record, deduction and audit models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

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
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from attendance_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from attendance_payroll.models.employee import Employee

ZERO = Decimal("0")


# ===== Periods =====


class PayrollPeriod(Base, TimestampMixin):
    """Fixed pay cycle with an inclusive date range and a lifecycle status.

    Totals are written only by the period totals aggregator.
    """

    __tablename__ = "payroll_period"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    period_type: Mapped[str] = mapped_column(String, nullable=False, default="semi-monthly")
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    pay_date: Mapped[date] = mapped_column(Date, nullable=False)
    working_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String, nullable=False, default="open")
    locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Totals
    total_employees: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    paid_employees: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_gross_pay: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    total_deductions: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    total_net_pay: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)

    __table_args__ = (
        CheckConstraint(
            "period_type IN ('weekly', 'bi-weekly', 'semi-monthly', 'monthly')",
            name="payroll_period_type_check",
        ),
        CheckConstraint(
            "status IN ('open', 'processing', 'locked', 'closed')",
            name="payroll_period_status_check",
        ),
        CheckConstraint("start_date <= end_date", name="payroll_period_range_check"),
        CheckConstraint("end_date <= pay_date", name="payroll_period_pay_date_check"),
        CheckConstraint("working_days >= 0", name="payroll_period_working_days_check"),
    )

    # Relationships (load explicitly; async sessions cannot lazy load)
    records: Mapped[list[PayrollRecord]] = relationship(
        back_populates="period", lazy="raise", passive_deletes=True
    )

    def contains(self, day: date) -> bool:
        """Whether ``day`` falls inside the inclusive period range."""
        return self.start_date <= day <= self.end_date


# ===== Records =====


class PayrollRecord(Base, TimestampMixin):
    """One employee's computed pay for one period."""

    __tablename__ = "payroll_record"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employee.id", ondelete="CASCADE"),
        nullable=False,
    )
    period_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("payroll_period.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Attendance summary
    days_present: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=ZERO)
    days_absent: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=ZERO)
    days_late: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=ZERO)
    days_half_day: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=ZERO)
    hours_worked: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=ZERO)
    late_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Rate snapshot taken at computation time
    daily_rate: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    overtime_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=ZERO)

    # Earnings
    basic_pay: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    overtime_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=ZERO)
    overtime_pay: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    holiday_pay: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    night_diff_pay: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    allowance: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    bonus: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    gross_pay: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)

    # Deductions by category
    sss_deduction: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    philhealth_deduction: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=ZERO
    )
    pagibig_deduction: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=ZERO
    )
    tax_deduction: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    loan_deduction: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)
    advance_deduction: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=ZERO
    )
    other_deductions: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=ZERO
    )
    deductions_total: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=ZERO
    )
    net_pay: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=ZERO)

    computed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Payment
    payment_status: Mapped[str] = mapped_column(String, nullable=False, default="unpaid")
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String, nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String, nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "period_id", name="payroll_record_employee_period_unique"),
        CheckConstraint(
            "payment_status IN ('unpaid', 'paid', 'partially-paid', 'cancelled')",
            name="payroll_record_payment_status_check",
        ),
    )

    # Relationships (load explicitly; async sessions cannot lazy load)
    employee: Mapped[Employee] = relationship(lazy="raise")
    period: Mapped[PayrollPeriod] = relationship(back_populates="records", lazy="raise")
    deductions: Mapped[list[Deduction]] = relationship(
        back_populates="payroll_record", lazy="raise", passive_deletes=True
    )

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"

    @property
    def is_computed(self) -> bool:
        return self.computed_at is not None


class Deduction(Base, TimestampMixin):
    """Deduction line owned by a single payroll record."""

    __tablename__ = "deduction"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    payroll_record_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("payroll_record.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    code: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    percentage: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    applied_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String, nullable=False, default="manual")

    __table_args__ = (
        CheckConstraint(
            "type IN ('sss', 'philhealth', 'pag-ibig', 'tax', 'loan', 'advance', 'other')",
            name="deduction_type_check",
        ),
        CheckConstraint("source IN ('policy', 'manual')", name="deduction_source_check"),
        CheckConstraint("amount >= 0", name="deduction_amount_check"),
    )

    payroll_record: Mapped[PayrollRecord] = relationship(
        back_populates="deductions", lazy="raise"
    )


# ===== Audit =====


class AuditEvent(Base, TimestampMixin):
    """Audit trail entry, written in the same transaction as the change."""

    __tablename__ = "audit_event"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_type: Mapped[str] = mapped_column(String, nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    actor: Mapped[str] = mapped_column(String, nullable=False, default="system")
    before_json: Mapped[dict[str, Any] | None] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=True
    )
    after_json: Mapped[dict[str, Any] | None] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=True
    )
