"""Employee directory model.

The payroll core only reads employees: their status decides who is included in
a batch computation and their rate fields are snapshotted onto each payroll
record when it is computed.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import CheckConstraint, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from attendance_payroll.models.base import Base, TimestampMixin


class Employee(Base, TimestampMixin):
    """Employee record with pay rates."""

    __tablename__ = "employee"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_number: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    position: Mapped[str | None] = mapped_column(String, nullable=True)
    department: Mapped[str | None] = mapped_column(String, nullable=True)
    daily_rate: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0")
    )
    hourly_rate: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0")
    )
    # Multiplier applied to hourly_rate for overtime without its own rate
    overtime_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("1.25")
    )
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'inactive', 'terminated', 'on-leave')",
            name="employee_status_check",
        ),
        CheckConstraint("daily_rate >= 0", name="employee_daily_rate_check"),
        CheckConstraint("hourly_rate >= 0", name="employee_hourly_rate_check"),
    )

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}"

    @property
    def is_active(self) -> bool:
        """Whether the employee is included in batch computations."""
        return self.status == "active"
