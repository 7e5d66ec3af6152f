"""Attendance and overtime fact models.

Both fact tables carry a nullable ``payroll_record_id``. A non-null value means
the fact has been claimed by that payroll record and must not be counted by
any other computation.
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from attendance_payroll.models.base import Base, TimestampMixin


class AttendanceLog(Base, TimestampMixin):
    """One attendance fact for an employee at a wall-clock timestamp."""

    __tablename__ = "attendance_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employee.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Naive local time; period boundaries are compared by calendar date
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="present")
    hours_worked: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("8")
    )
    overtime_hours: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    late_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    source: Mapped[str] = mapped_column(String, nullable=False, default="manual")
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    payroll_record_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("payroll_record.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        UniqueConstraint("employee_id", "timestamp", name="attendance_log_employee_ts_unique"),
        CheckConstraint(
            "status IN ('present', 'absent', 'late', 'half-day', 'holiday', 'leave')",
            name="attendance_log_status_check",
        ),
        CheckConstraint("hours_worked >= 0", name="attendance_log_hours_check"),
        Index("attendance_log_employee_ts_idx", "employee_id", "timestamp"),
        Index("attendance_log_record_idx", "payroll_record_id"),
    )

    @property
    def is_claimed(self) -> bool:
        return self.payroll_record_id is not None


class OvertimeLog(Base, TimestampMixin):
    """One overtime fact; only approved overtime is payable."""

    __tablename__ = "overtime_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("employee.id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    # Multiplier; falls back to the employee's overtime_rate when null
    rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    # Pre-computed pay; overrides hours x rate when present
    amount: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    type: Mapped[str] = mapped_column(String, nullable=False, default="regular")
    approval_status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    approved_by: Mapped[str | None] = mapped_column(String, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    payroll_record_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("payroll_record.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint(
            "type IN ('regular', 'holiday', 'special-holiday', 'rest-day')",
            name="overtime_log_type_check",
        ),
        CheckConstraint(
            "approval_status IN ('pending', 'approved', 'rejected')",
            name="overtime_log_approval_check",
        ),
        CheckConstraint("hours >= 0", name="overtime_log_hours_check"),
        Index("overtime_log_record_idx", "payroll_record_id"),
    )

    @property
    def is_claimed(self) -> bool:
        return self.payroll_record_id is not None
