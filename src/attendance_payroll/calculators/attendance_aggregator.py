"""Attendance aggregation over a payroll period."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.calculators.claims import claim_facts, release_stale_claims, visible_to
from attendance_payroll.calculators.money import to_decimal
from attendance_payroll.calculators.types import AttendanceStatus, AttendanceSummary
from attendance_payroll.models import AttendanceLog

ONE = Decimal("1")


def day_bounds(start_date: date, end_date: date) -> tuple[datetime, datetime]:
    """Half-open timestamp bounds covering the inclusive date range."""
    return (
        datetime.combine(start_date, time.min),
        datetime.combine(end_date + timedelta(days=1), time.min),
    )


def summarize_logs(logs: list[AttendanceLog]) -> AttendanceSummary:
    """Bucket attendance facts into day counts and hour sums.

    Late days count as present too. Holiday and leave facts only add hours.
    """
    summary = AttendanceSummary()
    for log in logs:
        status = log.status
        if status == AttendanceStatus.PRESENT:
            summary.days_present += ONE
        elif status == AttendanceStatus.LATE:
            summary.days_present += ONE
            summary.days_late += ONE
        elif status == AttendanceStatus.HALF_DAY:
            summary.days_half_day += ONE
        elif status == AttendanceStatus.ABSENT:
            summary.days_absent += ONE

        summary.hours_worked += to_decimal(log.hours_worked)
        summary.overtime_hours += to_decimal(log.overtime_hours)
        summary.late_minutes += log.late_minutes or 0
        summary.fact_ids.append(log.id)
    return summary


class AttendanceAggregator:
    """Summarizes and claims an employee's attendance facts for a period.

    Facts claimed by a different payroll record are invisible; facts claimed
    by ``record_id`` are counted again on recompute.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_facts(
        self,
        employee_id: int,
        start_date: date,
        end_date: date,
        record_id: int | None = None,
    ) -> list[AttendanceLog]:
        """Get attendance facts in the inclusive date range visible to a record."""
        lower, upper = day_bounds(start_date, end_date)
        result = await self.session.execute(
            select(AttendanceLog)
            .where(
                AttendanceLog.employee_id == employee_id,
                AttendanceLog.timestamp >= lower,
                AttendanceLog.timestamp < upper,
                visible_to(AttendanceLog, record_id),
            )
            .order_by(AttendanceLog.timestamp, AttendanceLog.id)
        )
        return list(result.scalars().all())

    async def summarize(
        self,
        employee_id: int,
        start_date: date,
        end_date: date,
        record_id: int | None = None,
    ) -> tuple[AttendanceSummary, list[int]]:
        """Summarize attendance for the range.

        Returns the summary and the ids of counted facts that are still
        unclaimed and must be claimed when the record is saved.
        """
        logs = await self.get_facts(employee_id, start_date, end_date, record_id)
        unclaimed = [log.id for log in logs if log.payroll_record_id is None]
        return summarize_logs(logs), unclaimed

    async def claim(self, record_id: int, fact_ids: list[int]) -> int:
        return await claim_facts(self.session, AttendanceLog, record_id, fact_ids)

    async def release_stale(self, record_id: int, keep_ids: list[int]) -> int:
        return await release_stale_claims(self.session, AttendanceLog, record_id, keep_ids)
