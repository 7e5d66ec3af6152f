"""Payroll computation for one employee, a whole period, and record removal."""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.calculators.attendance_aggregator import AttendanceAggregator
from attendance_payroll.calculators.deduction_policy import (
    DeductionPolicy,
    standard_contribution_policy,
    validate_policy_output,
)
from attendance_payroll.calculators.money import round_to_cents, to_decimal
from attendance_payroll.calculators.overtime_claimer import OvertimeClaimer
from attendance_payroll.calculators.types import (
    BatchFailure,
    BatchResult,
    PaymentStatus,
    SupplementalEarnings,
)
from attendance_payroll.database import acquire_record_lock, record_lock_key
from attendance_payroll.exceptions import (
    ConcurrencyConflictError,
    PayrollError,
    PayrollValidationError,
)
from attendance_payroll.models import Deduction, Employee, PayrollPeriod, PayrollRecord, utcnow
from attendance_payroll.services.audit_service import AuditService, snapshot
from attendance_payroll.services.deduction_ledger import DeductionLedger
from attendance_payroll.services.loaders import (
    find_record,
    get_employee,
    get_period,
    get_record,
)
from attendance_payroll.services.period_totals import PeriodTotalsAggregator
from attendance_payroll.services.state_machine import PeriodStateMachine, PeriodStatus

logger = logging.getLogger(__name__)

# Fields written to the audit trail when a record is computed
AUDIT_FIELDS = [
    "days_present",
    "days_half_day",
    "basic_pay",
    "overtime_pay",
    "gross_pay",
    "deductions_total",
    "net_pay",
]


class PayrollComputer:
    """Turns attendance and overtime facts into a payroll record.

    For each (employee, period) pair:
    1. Summarize unclaimed attendance and approved overtime in the period
    2. basic_pay = (days_present + 0.5 x days_half_day) x daily_rate
    3. gross_pay = basic + overtime + holiday + night diff + allowance + bonus
    4. Replace policy deductions and recalculate net pay from all deductions
    5. Claim the consumed facts for the record

    Everything happens in the caller's transaction; a failure at any step
    leaves no partial record behind once the caller rolls back.
    """

    def __init__(
        self,
        session: AsyncSession,
        deduction_policy: DeductionPolicy | None = None,
    ):
        self.session = session
        self.deduction_policy = deduction_policy or standard_contribution_policy()
        self.attendance = AttendanceAggregator(session)
        self.overtime = OvertimeClaimer(session)
        self.ledger = DeductionLedger(session)
        self.totals = PeriodTotalsAggregator(session)
        self.audit = AuditService(session)

    async def compute(
        self,
        employee_id: int,
        period_id: int,
        earnings: SupplementalEarnings | None = None,
        actor: str = "system",
        refresh_totals: bool = True,
    ) -> PayrollRecord:
        """Compute (or recompute) one employee's record for a period.

        Recomputing with unchanged facts yields the same amounts. When
        ``earnings`` is omitted an existing record keeps its supplemental
        earnings.
        """
        employee = await get_employee(self.session, employee_id)
        period = await self._lock_period_for_compute(period_id)
        existing = await find_record(self.session, employee_id, period_id)
        PeriodStateMachine.ensure_record_mutable(period, existing)

        await acquire_record_lock(self.session, record_lock_key(employee_id, period_id))
        record = await find_record(self.session, employee_id, period_id, for_update=True)
        PeriodStateMachine.ensure_record_mutable(period, record)

        record_id = record.id if record is not None else None
        attendance, new_attendance_ids = await self.attendance.summarize(
            employee_id, period.start_date, period.end_date, record_id
        )
        daily_rate = to_decimal(employee.daily_rate)
        hourly_rate = to_decimal(employee.hourly_rate)
        overtime_rate = to_decimal(employee.overtime_rate)
        overtime, new_overtime_ids = await self.overtime.summarize(
            employee_id,
            period.start_date,
            period.end_date,
            hourly_rate,
            overtime_rate,
            record_id,
        )

        if earnings is None:
            earnings = self._existing_earnings(record)
        earnings = SupplementalEarnings(
            holiday_pay=round_to_cents(to_decimal(earnings.holiday_pay)),
            night_diff_pay=round_to_cents(to_decimal(earnings.night_diff_pay)),
            allowance=round_to_cents(to_decimal(earnings.allowance)),
            bonus=round_to_cents(to_decimal(earnings.bonus)),
        )
        negative = [name for name, value in vars(earnings).items() if value < 0]
        if negative:
            raise PayrollValidationError(
                [f"{name} must be non-negative" for name in sorted(negative)]
            )

        basic_pay = round_to_cents(attendance.payable_days * daily_rate)
        gross_pay = round_to_cents(basic_pay + overtime.total_pay + earnings.total)

        # Policy output is checked before anything is written
        policy_amounts = validate_policy_output(self.deduction_policy(gross_pay))

        before = snapshot(record, AUDIT_FIELDS) if record is not None else None
        is_new = record is None
        if is_new:
            record = await self._create_record(employee_id, period)

        record.daily_rate = daily_rate
        record.hourly_rate = hourly_rate
        record.overtime_rate = overtime_rate
        record.days_present = attendance.days_present
        record.days_absent = attendance.days_absent
        record.days_late = attendance.days_late
        record.days_half_day = attendance.days_half_day
        record.hours_worked = attendance.hours_worked
        record.late_minutes = attendance.late_minutes
        record.basic_pay = basic_pay
        record.overtime_hours = overtime.total_hours
        record.overtime_pay = overtime.total_pay
        record.holiday_pay = earnings.holiday_pay
        record.night_diff_pay = earnings.night_diff_pay
        record.allowance = earnings.allowance
        record.bonus = earnings.bonus
        record.gross_pay = gross_pay
        record.computed_at = utcnow()

        await self.ledger.replace_policy_deductions(record, policy_amounts)
        await self.ledger.recalculate(record)

        await self.attendance.release_stale(record.id, attendance.fact_ids)
        await self.attendance.claim(record.id, new_attendance_ids)
        await self.overtime.release_stale(record.id, overtime.fact_ids)
        await self.overtime.claim(record.id, new_overtime_ids)

        if period.status == PeriodStatus.OPEN:
            PeriodStateMachine.validate_transition(period.status, PeriodStatus.PROCESSING)
            period.status = PeriodStatus.PROCESSING.value
            self.audit.record(
                "payroll_period",
                period.id,
                "status_change:open:processing",
                actor=actor,
            )
            logger.info("Payroll period %s is now processing", period.id)

        await self.session.flush()
        self.audit.record(
            "payroll_record",
            record.id,
            "created" if is_new else "recomputed",
            actor=actor,
            before=before,
            after=snapshot(record, AUDIT_FIELDS),
        )
        logger.info(
            "Computed payroll record %s for employee %s in period %s: gross %s, net %s",
            record.id,
            employee_id,
            period_id,
            record.gross_pay,
            record.net_pay,
        )

        if refresh_totals:
            await self.totals.refresh_totals(period_id)
        return record

    async def compute_batch(self, period_id: int, actor: str = "system") -> BatchResult:
        """Compute every active employee's record for a period.

        Each employee runs in its own savepoint; a payroll error for one
        employee rolls back only that employee and is reported in ``failed``.
        """
        period = await self._lock_period_for_compute(period_id)
        PeriodStateMachine.ensure_records_mutable(period)

        result = await self.session.execute(
            select(Employee.id).where(Employee.status == "active").order_by(Employee.id)
        )
        employee_ids = list(result.scalars().all())

        batch = BatchResult(period_id=period_id)
        for employee_id in employee_ids:
            try:
                async with self.session.begin_nested():
                    record = await self.compute(
                        employee_id,
                        period_id,
                        actor=actor,
                        refresh_totals=False,
                    )
            except PayrollError as exc:
                logger.warning(
                    "Payroll computation failed for employee %s in period %s: %s",
                    employee_id,
                    period_id,
                    exc.message,
                )
                batch.failed.append(
                    BatchFailure(employee_id=employee_id, reason=exc.message, code=exc.code)
                )
            else:
                batch.succeeded.append(record)

        await self.totals.refresh_totals(period_id)
        logger.info(
            "Batch computed period %s: %d succeeded, %d failed",
            period_id,
            len(batch.succeeded),
            len(batch.failed),
        )
        return batch

    async def delete_record(self, record_id: int, actor: str = "system") -> None:
        """Delete an unpaid or cancelled record, releasing every fact it claimed."""
        record = await get_record(self.session, record_id, for_update=True)
        period = await get_period(self.session, record.period_id, for_share=True)
        # Deleting is how a cancelled record is cleared for recomputation
        if record.payment_status == PaymentStatus.CANCELLED:
            PeriodStateMachine.ensure_records_mutable(period)
        else:
            PeriodStateMachine.ensure_record_mutable(period, record)

        before = snapshot(record, AUDIT_FIELDS)
        released = await self.attendance.release_stale(record.id, [])
        released += await self.overtime.release_stale(record.id, [])
        await self.session.execute(
            delete(Deduction).where(Deduction.payroll_record_id == record.id)
        )
        await self.session.delete(record)
        await self.session.flush()

        self.audit.record("payroll_record", record_id, "deleted", actor=actor, before=before)
        logger.info("Deleted payroll record %s, released %d facts", record_id, released)

        await self.totals.refresh_totals(period.id)

    async def _lock_period_for_compute(self, period_id: int) -> PayrollPeriod:
        """Share-lock the period, or lock it exclusively if compute will move it.

        The first computation on an open period writes its status, so it takes
        the row lock it will need up front instead of upgrading a share lock.
        """
        period = await get_period(self.session, period_id)
        if period.status == PeriodStatus.OPEN:
            return await get_period(self.session, period_id, for_update=True)
        return await get_period(self.session, period_id, for_share=True)

    async def _create_record(self, employee_id: int, period: PayrollPeriod) -> PayrollRecord:
        record = PayrollRecord(
            employee_id=employee_id,
            period_id=period.id,
            payment_status=PaymentStatus.UNPAID.value,
        )
        self.session.add(record)
        try:
            async with self.session.begin_nested():
                await self.session.flush()
        except IntegrityError as exc:
            raise ConcurrencyConflictError(
                f"Payroll record for employee {employee_id} in period {period.id} "
                f"was created concurrently"
            ) from exc

        await self.ledger.carry_forward_recurring(record, period)
        return record

    @staticmethod
    def _existing_earnings(record: PayrollRecord | None) -> SupplementalEarnings:
        if record is None:
            return SupplementalEarnings()
        return SupplementalEarnings(
            holiday_pay=to_decimal(record.holiday_pay),
            night_diff_pay=to_decimal(record.night_diff_pay),
            allowance=to_decimal(record.allowance),
            bonus=to_decimal(record.bonus),
        )
