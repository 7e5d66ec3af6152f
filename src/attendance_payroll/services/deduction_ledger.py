"""Deduction ledger: per-record deduction rows and their roll-up."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.calculators.money import ZERO, round_to_cents, sum_money, to_decimal
from attendance_payroll.calculators.types import (
    DEDUCTION_FIELDS,
    DeductionCategory,
    DeductionInput,
    DeductionSource,
)
from attendance_payroll.exceptions import (
    NotFoundError,
    PayrollValidationError,
)
from attendance_payroll.models import Deduction, PayrollPeriod, PayrollRecord
from attendance_payroll.services.audit_service import AuditService, snapshot
from attendance_payroll.services.loaders import get_period, get_record, get_record_deductions
from attendance_payroll.services.state_machine import PeriodStateMachine

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


def _finite_decimal(value: object) -> Decimal | None:
    """Return ``value`` as a finite Decimal, or None when it is not one."""
    try:
        number = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    return number if number.is_finite() else None


def validate_deduction_input(data: DeductionInput) -> list[str]:
    """Validate a manual deduction, returning any errors."""
    errors: list[str] = []

    valid = {c.value for c in DeductionCategory}
    if data.type not in valid:
        errors.append(
            f"Unknown deduction type '{data.type}'. Valid values: {', '.join(sorted(valid))}"
        )

    if data.amount is None:
        errors.append("Deduction amount is required")
    else:
        amount = _finite_decimal(data.amount)
        if amount is None:
            errors.append(f"Deduction amount is not a number: {data.amount!r}")
        elif amount < 0:
            errors.append(f"Deduction amount must be non-negative, got {data.amount}")

    if data.percentage is not None:
        pct = _finite_decimal(data.percentage)
        if pct is None:
            errors.append(f"Deduction percentage is not a number: {data.percentage!r}")
        elif pct < 0 or pct > HUNDRED:
            errors.append(f"Deduction percentage must be between 0 and 100, got {pct}")

    return errors


class DeductionLedger:
    """Adds, removes and totals deductions for payroll records.

    Every change re-derives the record's category fields, deductions_total and
    net_pay from all of its deduction rows:

        deductions_total = sum of category fields
        net_pay = gross_pay - deductions_total
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit = AuditService(session)

    async def add_deduction(
        self,
        record_id: int,
        data: DeductionInput,
        actor: str = "system",
    ) -> PayrollRecord:
        """Add a manual deduction and recalculate the record."""
        record = await get_record(self.session, record_id, for_update=True)
        await self._ensure_mutable(record)

        errors = validate_deduction_input(data)
        if errors:
            raise PayrollValidationError(errors)

        deduction = Deduction(
            payroll_record_id=record.id,
            type=data.type,
            amount=round_to_cents(to_decimal(data.amount)),
            code=data.code,
            description=data.description,
            percentage=data.percentage,
            is_recurring=data.is_recurring,
            applied_date=data.applied_date,
            note=data.note,
            source=DeductionSource.MANUAL.value,
        )
        self.session.add(deduction)
        await self.session.flush()

        await self.recalculate(record)
        self.audit.record(
            "deduction",
            deduction.id,
            "created",
            actor=actor,
            after=snapshot(deduction),
        )
        logger.info(
            "Added %s deduction %s to record %s: %s",
            deduction.type,
            deduction.id,
            record.id,
            deduction.amount,
        )
        return record

    async def remove_deduction(self, deduction_id: int, actor: str = "system") -> PayrollRecord:
        """Delete a deduction and recalculate its record."""
        deduction = await self.session.get(Deduction, deduction_id)
        if deduction is None:
            raise NotFoundError("Deduction", deduction_id)

        record = await get_record(self.session, deduction.payroll_record_id, for_update=True)
        await self._ensure_mutable(record)

        before = snapshot(deduction)
        await self.session.delete(deduction)
        await self.session.flush()

        await self.recalculate(record)
        self.audit.record("deduction", deduction_id, "deleted", actor=actor, before=before)
        logger.info("Removed deduction %s from record %s", deduction_id, record.id)
        return record

    async def recalculate(self, record: PayrollRecord) -> PayrollRecord:
        """Rebuild category fields, deductions_total and net_pay from all rows."""
        rows = await get_record_deductions(self.session, record.id)

        by_category: dict[str, list[Decimal]] = {c.value: [] for c in DeductionCategory}
        for row in rows:
            by_category[row.type].append(to_decimal(row.amount))

        for category, field_name in DEDUCTION_FIELDS.items():
            setattr(record, field_name, sum_money(by_category[category.value]))

        record.deductions_total = sum_money(
            getattr(record, field_name) for field_name in DEDUCTION_FIELDS.values()
        )
        record.net_pay = round_to_cents(to_decimal(record.gross_pay) - record.deductions_total)
        return record

    async def replace_policy_deductions(
        self,
        record: PayrollRecord,
        amounts: Mapping[str, Decimal],
    ) -> list[Deduction]:
        """Swap the record's policy rows for a fresh policy result.

        Manual rows are untouched. Zero amounts produce no row.
        """
        await self.session.execute(
            delete(Deduction).where(
                Deduction.payroll_record_id == record.id,
                Deduction.source == DeductionSource.POLICY.value,
            )
        )

        rows = [
            Deduction(
                payroll_record_id=record.id,
                type=category,
                amount=amount,
                description=f"{category} contribution",
                source=DeductionSource.POLICY.value,
            )
            for category, amount in sorted(amounts.items())
            if amount > ZERO
        ]
        self.session.add_all(rows)
        await self.session.flush()
        return rows

    async def carry_forward_recurring(self, record: PayrollRecord, period: PayrollPeriod) -> int:
        """Copy recurring manual deductions from the employee's previous record.

        The previous record is the one whose period starts latest before
        ``period``. Returns count of copied deductions.
        """
        previous_id = (
            await self.session.execute(
                select(PayrollRecord.id)
                .join(PayrollPeriod, PayrollPeriod.id == PayrollRecord.period_id)
                .where(
                    PayrollRecord.employee_id == record.employee_id,
                    PayrollRecord.id != record.id,
                    PayrollPeriod.start_date < period.start_date,
                )
                .order_by(PayrollPeriod.start_date.desc())
                .limit(1)
            )
        ).scalar_one_or_none()
        if previous_id is None:
            return 0

        result = await self.session.execute(
            select(Deduction)
            .where(
                Deduction.payroll_record_id == previous_id,
                Deduction.is_recurring.is_(True),
                Deduction.source == DeductionSource.MANUAL.value,
            )
            .order_by(Deduction.id)
        )
        recurring = list(result.scalars().all())
        for source in recurring:
            self.session.add(
                Deduction(
                    payroll_record_id=record.id,
                    type=source.type,
                    amount=source.amount,
                    code=source.code,
                    description=source.description,
                    percentage=source.percentage,
                    is_recurring=True,
                    note=source.note,
                    source=DeductionSource.MANUAL.value,
                )
            )
        if recurring:
            await self.session.flush()
            logger.info(
                "Carried %d recurring deductions forward to record %s",
                len(recurring),
                record.id,
            )
        return len(recurring)

    async def _ensure_mutable(self, record: PayrollRecord) -> None:
        period = await get_period(self.session, record.period_id, for_share=True)
        PeriodStateMachine.ensure_record_mutable(period, record)
