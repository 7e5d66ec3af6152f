"""Period totals aggregation."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.calculators.money import sum_money
from attendance_payroll.calculators.types import PaymentStatus
from attendance_payroll.models import PayrollPeriod
from attendance_payroll.services.loaders import get_period, get_period_records

logger = logging.getLogger(__name__)


class PeriodTotalsAggregator:
    """Sole writer of a period's totals.

    Totals are always rebuilt from the current records, never adjusted
    incrementally, so a refresh after any mutation is idempotent.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def refresh_totals(self, period_id: int) -> PayrollPeriod:
        """Recompute counts and money totals for a period from its records.

        Cancelled records count toward ``total_employees`` but not the money
        totals.
        """
        period = await get_period(self.session, period_id)
        records = await get_period_records(self.session, period_id)
        payable = [r for r in records if r.payment_status != PaymentStatus.CANCELLED]

        period.total_employees = len(records)
        period.paid_employees = sum(1 for r in records if r.payment_status == PaymentStatus.PAID)
        period.total_gross_pay = sum_money(r.gross_pay for r in payable)
        period.total_deductions = sum_money(r.deductions_total for r in payable)
        period.total_net_pay = sum_money(r.net_pay for r in payable)

        logger.debug(
            "Refreshed totals for period %s: %d records, net %s",
            period_id,
            period.total_employees,
            period.total_net_pay,
        )
        return period
