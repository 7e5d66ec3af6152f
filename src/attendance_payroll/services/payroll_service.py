"""Payroll service - the transactional entry point for every operation.

Each public method is one unit of work: it opens a session, runs inside
``session.begin()`` and either commits everything or nothing. Returned ORM
objects are detached but fully loaded.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attendance_payroll.calculators.deduction_policy import DeductionPolicy, policy_from_name
from attendance_payroll.calculators.types import (
    BatchResult,
    DeductionInput,
    PaymentInfo,
    PeriodType,
    SupplementalEarnings,
)
from attendance_payroll.config import get_settings
from attendance_payroll.database import get_session_factory
from attendance_payroll.exceptions import PayrollValidationError
from attendance_payroll.models import AuditEvent, Deduction, PayrollPeriod, PayrollRecord
from attendance_payroll.services.audit_service import AuditService
from attendance_payroll.services.deduction_ledger import DeductionLedger
from attendance_payroll.services.loaders import (
    get_period,
    get_period_records,
    get_record,
    get_record_deductions,
)
from attendance_payroll.services.payment_service import PaymentService
from attendance_payroll.services.payroll_computer import PayrollComputer
from attendance_payroll.services.period_service import (
    NextPeriodDates,
    PeriodData,
    PeriodService,
    generate_period_name,
    next_period_dates,
)


class PayrollService:
    """Async facade over the payroll computation and period lifecycle engine."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        deduction_policy: DeductionPolicy | None = None,
    ):
        self.session_factory = session_factory or get_session_factory()
        self.deduction_policy = deduction_policy or policy_from_name(
            get_settings().deduction_policy
        )

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[AsyncSession]:
        """Session with an open transaction, committed on success."""
        async with self.session_factory() as session:
            async with session.begin():
                yield session

    # ===== Computation =====

    async def compute_payroll(
        self,
        employee_id: int,
        period_id: int,
        earnings: SupplementalEarnings | None = None,
        actor: str = "system",
    ) -> PayrollRecord:
        async with self.unit_of_work() as session:
            computer = PayrollComputer(session, self.deduction_policy)
            return await computer.compute(employee_id, period_id, earnings, actor=actor)

    async def compute_payroll_batch(self, period_id: int, actor: str = "system") -> BatchResult:
        async with self.unit_of_work() as session:
            computer = PayrollComputer(session, self.deduction_policy)
            return await computer.compute_batch(period_id, actor=actor)

    async def delete_record(self, record_id: int, actor: str = "system") -> None:
        async with self.unit_of_work() as session:
            computer = PayrollComputer(session, self.deduction_policy)
            await computer.delete_record(record_id, actor=actor)

    # ===== Deductions =====

    async def add_deduction(
        self,
        record_id: int,
        data: DeductionInput,
        actor: str = "system",
    ) -> PayrollRecord:
        async with self.unit_of_work() as session:
            record = await DeductionLedger(session).add_deduction(record_id, data, actor=actor)
            await PeriodService(session).refresh_totals(record.period_id)
            return record

    async def remove_deduction(self, deduction_id: int, actor: str = "system") -> PayrollRecord:
        async with self.unit_of_work() as session:
            record = await DeductionLedger(session).remove_deduction(deduction_id, actor=actor)
            await PeriodService(session).refresh_totals(record.period_id)
            return record

    # ===== Payments =====

    async def mark_as_paid(
        self,
        record_id: int,
        payment: PaymentInfo | None = None,
        actor: str = "system",
    ) -> PayrollRecord:
        async with self.unit_of_work() as session:
            return await PaymentService(session).mark_as_paid(record_id, payment, actor=actor)

    async def cancel_record(
        self,
        record_id: int,
        reason: str | None = None,
        actor: str = "system",
    ) -> PayrollRecord:
        async with self.unit_of_work() as session:
            return await PaymentService(session).cancel_record(record_id, reason, actor=actor)

    # ===== Periods =====

    async def create_period(self, data: PeriodData, actor: str = "system") -> PayrollPeriod:
        async with self.unit_of_work() as session:
            return await PeriodService(session).create_period(data, actor=actor)

    async def update_period(
        self,
        period_id: int,
        changes: dict[str, Any],
        actor: str = "system",
    ) -> PayrollPeriod:
        async with self.unit_of_work() as session:
            return await PeriodService(session).update_period(period_id, changes, actor=actor)

    async def delete_period(self, period_id: int, actor: str = "system") -> None:
        async with self.unit_of_work() as session:
            await PeriodService(session).delete_period(period_id, actor=actor)

    async def lock_period(self, period_id: int, actor: str = "system") -> PayrollPeriod:
        async with self.unit_of_work() as session:
            return await PeriodService(session).lock_period(period_id, actor=actor)

    async def close_period(self, period_id: int, actor: str = "system") -> PayrollPeriod:
        async with self.unit_of_work() as session:
            return await PeriodService(session).close_period(period_id, actor=actor)

    async def reopen_period(self, period_id: int, actor: str = "system") -> PayrollPeriod:
        async with self.unit_of_work() as session:
            return await PeriodService(session).reopen_period(period_id, actor=actor)

    async def refresh_period_totals(self, period_id: int) -> PayrollPeriod:
        async with self.unit_of_work() as session:
            return await PeriodService(session).refresh_totals(period_id)

    async def suggest_next_period(
        self,
        period_type: str = PeriodType.SEMI_MONTHLY.value,
        today: date | None = None,
    ) -> NextPeriodDates:
        """Suggest dates following the latest period.

        Without any period, suggests the first half of the current month.
        """
        valid_types = [t.value for t in PeriodType]
        if period_type not in valid_types:
            raise PayrollValidationError(
                f"Invalid period type '{period_type}'. Valid values: {', '.join(valid_types)}"
            )

        async with self.unit_of_work() as session:
            result = await session.execute(
                select(PayrollPeriod.end_date).order_by(PayrollPeriod.end_date.desc()).limit(1)
            )
            last_end = result.scalar_one_or_none()

        if last_end is not None:
            return next_period_dates(last_end, period_type)

        today = today or date.today()
        start = today.replace(day=1)
        end = today.replace(day=15)
        return NextPeriodDates(
            period_type=period_type,
            start_date=start,
            end_date=end,
            pay_date=today.replace(day=20),
            name=generate_period_name(start, end, period_type),
        )

    # ===== Reads =====

    async def get_period(self, period_id: int) -> PayrollPeriod:
        async with self.unit_of_work() as session:
            return await get_period(session, period_id)

    async def list_periods(self, status: str | None = None) -> list[PayrollPeriod]:
        async with self.unit_of_work() as session:
            stmt = select(PayrollPeriod).order_by(PayrollPeriod.start_date)
            if status is not None:
                stmt = stmt.where(PayrollPeriod.status == status)
            return list((await session.execute(stmt)).scalars().all())

    async def list_period_records(self, period_id: int) -> list[PayrollRecord]:
        async with self.unit_of_work() as session:
            await get_period(session, period_id)
            return await get_period_records(session, period_id)

    async def get_record(self, record_id: int) -> PayrollRecord:
        async with self.unit_of_work() as session:
            return await get_record(session, record_id)

    async def get_record_deductions(self, record_id: int) -> list[Deduction]:
        async with self.unit_of_work() as session:
            await get_record(session, record_id)
            return await get_record_deductions(session, record_id)

    async def get_audit_trail(self, entity_type: str, entity_id: int) -> list[AuditEvent]:
        async with self.unit_of_work() as session:
            return await AuditService(session).get_events(entity_type, entity_id)
