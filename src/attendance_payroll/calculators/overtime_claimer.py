"""Approved overtime selection, pricing and claiming."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.calculators.claims import claim_facts, release_stale_claims, visible_to
from attendance_payroll.calculators.money import ZERO, round_to_cents, to_decimal
from attendance_payroll.calculators.types import ApprovalStatus, OvertimeSummary
from attendance_payroll.models import OvertimeLog


def overtime_pay(log: OvertimeLog, hourly_rate: Decimal, default_multiplier: Decimal) -> Decimal:
    """Pay for one overtime fact.

    A stored ``amount`` wins. Otherwise hours x hourly rate x multiplier, where
    the multiplier is the fact's own rate or the employee's overtime rate.
    """
    if log.amount is not None:
        return round_to_cents(to_decimal(log.amount))
    multiplier = to_decimal(log.rate) if log.rate is not None else default_multiplier
    return round_to_cents(to_decimal(log.hours) * hourly_rate * multiplier)


class OvertimeClaimer:
    """Finds payable overtime for a period and claims it for a payroll record.

    Pending and rejected overtime is never included. Claimed overtime is
    counted only by the record that claimed it.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_eligible(
        self,
        employee_id: int,
        start_date: date,
        end_date: date,
        record_id: int | None = None,
    ) -> list[OvertimeLog]:
        """Get approved overtime in the inclusive date range visible to a record."""
        result = await self.session.execute(
            select(OvertimeLog)
            .where(
                OvertimeLog.employee_id == employee_id,
                OvertimeLog.work_date >= start_date,
                OvertimeLog.work_date <= end_date,
                OvertimeLog.approval_status == ApprovalStatus.APPROVED.value,
                visible_to(OvertimeLog, record_id),
            )
            .order_by(OvertimeLog.work_date, OvertimeLog.id)
        )
        return list(result.scalars().all())

    async def summarize(
        self,
        employee_id: int,
        start_date: date,
        end_date: date,
        hourly_rate: Decimal,
        overtime_rate: Decimal,
        record_id: int | None = None,
    ) -> tuple[OvertimeSummary, list[int]]:
        """Total eligible overtime hours and pay.

        Returns the summary and the ids of facts that still need claiming.
        """
        logs = await self.get_eligible(employee_id, start_date, end_date, record_id)

        summary = OvertimeSummary()
        total_pay = ZERO
        for log in logs:
            summary.total_hours += to_decimal(log.hours)
            total_pay += overtime_pay(log, hourly_rate, overtime_rate)
            summary.fact_ids.append(log.id)
        summary.total_pay = round_to_cents(total_pay)

        unclaimed = [log.id for log in logs if log.payroll_record_id is None]
        return summary, unclaimed

    async def claim(self, record_id: int, fact_ids: list[int]) -> int:
        """Claim overtime facts for a record; raises ConcurrencyConflictError on a lost race."""
        return await claim_facts(self.session, OvertimeLog, record_id, fact_ids)

    async def release_stale(self, record_id: int, keep_ids: list[int]) -> int:
        """Release overtime the record holds that is no longer eligible."""
        return await release_stale_claims(self.session, OvertimeLog, record_id, keep_ids)
