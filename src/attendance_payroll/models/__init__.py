"""ORM models for the attendance payroll engine."""

from attendance_payroll.models.attendance import AttendanceLog, OvertimeLog
from attendance_payroll.models.base import Base, TimestampMixin, utcnow
from attendance_payroll.models.employee import Employee
from attendance_payroll.models.payroll import (
    AuditEvent,
    Deduction,
    PayrollPeriod,
    PayrollRecord,
)

__all__ = [
    "AttendanceLog",
    "AuditEvent",
    "Base",
    "Deduction",
    "Employee",
    "OvertimeLog",
    "PayrollPeriod",
    "PayrollRecord",
    "TimestampMixin",
    "utcnow",
]
