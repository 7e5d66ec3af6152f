"""Payment status changes for payroll records."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.calculators.types import PaymentInfo, PaymentStatus
from attendance_payroll.exceptions import AlreadyPaidError, RecordCancelledError
from attendance_payroll.models import PayrollRecord, utcnow
from attendance_payroll.services.audit_service import AuditService
from attendance_payroll.services.loaders import get_period, get_record
from attendance_payroll.services.period_totals import PeriodTotalsAggregator
from attendance_payroll.services.state_machine import PeriodStateMachine

logger = logging.getLogger(__name__)


class PaymentService:
    """Service for payment status changes on payroll records.

    Constraints:
    - A record is paid at most once; paid records are immutable afterwards
    - Payment is allowed while the period is open, processing or locked
    - Cancellation is allowed only while records are mutable (open, processing)
    - Cancelled records are never paid and keep the facts they claimed
    - Closed periods accept no changes
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit = AuditService(session)
        self.totals = PeriodTotalsAggregator(session)

    async def mark_as_paid(
        self,
        record_id: int,
        payment: PaymentInfo | None = None,
        actor: str = "system",
    ) -> PayrollRecord:
        """Mark a record as paid and refresh its period's totals.

        Raises:
            NotFoundError: If the record does not exist
            PeriodClosedError: If the record's period is closed
            AlreadyPaidError: If the record is already paid
            RecordCancelledError: If the record was cancelled
        """
        payment = payment or PaymentInfo()
        record = await get_record(self.session, record_id, for_update=True)
        period = await get_period(self.session, record.period_id, for_share=True)
        PeriodStateMachine.ensure_payment_allowed(period)

        if record.payment_status == PaymentStatus.PAID:
            raise AlreadyPaidError(record.id)
        if record.payment_status == PaymentStatus.CANCELLED:
            raise RecordCancelledError(record.id)

        old_status = record.payment_status
        record.payment_status = PaymentStatus.PAID.value
        record.paid_at = utcnow()
        record.payment_method = payment.payment_method
        record.payment_reference = payment.payment_reference
        if payment.remarks is not None:
            record.remarks = payment.remarks

        self.audit.record(
            "payroll_record",
            record.id,
            f"payment_status:{old_status}:paid",
            actor=actor,
            before={"payment_status": old_status},
            after={
                "payment_status": record.payment_status,
                "payment_method": record.payment_method,
                "payment_reference": record.payment_reference,
                "net_pay": str(record.net_pay),
            },
        )
        logger.info(
            "Payroll record %s marked as paid (%s)",
            record.id,
            payment.payment_method or "unspecified method",
        )

        await self.totals.refresh_totals(record.period_id)
        return record

    async def cancel_record(
        self,
        record_id: int,
        reason: str | None = None,
        actor: str = "system",
    ) -> PayrollRecord:
        """Cancel an unpaid record so it is excluded from payment and totals.

        Cancelling an already cancelled record is a no-op.

        Raises:
            NotFoundError: If the record does not exist
            PeriodClosedError: If the record's period is closed
            RecordPaidError: If the record is paid
            PeriodLockedError: If the record's period is locked
        """
        record = await get_record(self.session, record_id, for_update=True)
        if record.payment_status == PaymentStatus.CANCELLED:
            return record

        period = await get_period(self.session, record.period_id, for_share=True)
        PeriodStateMachine.ensure_record_mutable(period, record)

        old_status = record.payment_status
        record.payment_status = PaymentStatus.CANCELLED.value
        if reason is not None:
            record.remarks = reason

        self.audit.record(
            "payroll_record",
            record.id,
            f"payment_status:{old_status}:cancelled",
            actor=actor,
            before={"payment_status": old_status},
            after={"payment_status": record.payment_status, "remarks": record.remarks},
        )
        logger.info("Payroll record %s cancelled", record.id)

        await self.totals.refresh_totals(record.period_id)
        return record
