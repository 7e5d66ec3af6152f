"""Payroll period service: creation, editing and lifecycle transitions."""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.calculators.types import PeriodType
from attendance_payroll.exceptions import (
    AlreadyClosedError,
    InvalidStateError,
    NotAllComputedError,
    NotLockedError,
    PayrollValidationError,
    PeriodClosedError,
    PeriodLockedError,
    PeriodNotEmptyError,
    UnpaidRecordsExistError,
)
from attendance_payroll.models import PayrollPeriod, PayrollRecord, utcnow
from attendance_payroll.services.audit_service import AuditService, snapshot
from attendance_payroll.services.loaders import get_period, get_period_records
from attendance_payroll.services.period_totals import PeriodTotalsAggregator
from attendance_payroll.services.state_machine import PeriodStateMachine, PeriodStatus

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "name",
    "period_type",
    "start_date",
    "end_date",
    "pay_date",
    "working_days",
    "notes",
)


@dataclass
class PeriodData:
    """Fields for creating a payroll period."""

    start_date: date
    end_date: date
    pay_date: date
    period_type: str = PeriodType.SEMI_MONTHLY.value
    name: str | None = None
    working_days: int = 0
    notes: str | None = None


@dataclass
class NextPeriodDates:
    """Suggested dates for the period following an existing one."""

    period_type: str
    start_date: date
    end_date: date
    pay_date: date
    name: str


def generate_period_name(start_date: date, end_date: date, period_type: str) -> str:
    """Default period name, e.g. ``semi-monthly Jan 1 - Jan 15, 2026``."""
    return (
        f"{period_type} {start_date:%b} {start_date.day} - "
        f"{end_date:%b} {end_date.day}, {end_date.year}"
    )


def _month_end(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def next_period_dates(last_end: date, period_type: str) -> NextPeriodDates:
    """Suggest start, end and pay dates for the period after ``last_end``.

    Weekly and bi-weekly periods run 7 and 14 days and pay 3 days after the
    end. Semi-monthly periods end on the 15th or the month end, monthly
    periods on the month end; both pay 5 days after the end.
    """
    start = last_end + timedelta(days=1)

    if period_type == PeriodType.WEEKLY:
        end = start + timedelta(days=6)
        pay = end + timedelta(days=3)
    elif period_type == PeriodType.BI_WEEKLY:
        end = start + timedelta(days=13)
        pay = end + timedelta(days=3)
    elif period_type == PeriodType.SEMI_MONTHLY:
        end = start.replace(day=15) if start.day <= 15 else _month_end(start)
        pay = end + timedelta(days=5)
    elif period_type == PeriodType.MONTHLY:
        end = _month_end(start)
        pay = end + timedelta(days=5)
    else:
        raise PayrollValidationError(f"Invalid period type '{period_type}'")

    return NextPeriodDates(
        period_type=period_type,
        start_date=start,
        end_date=end,
        pay_date=pay,
        name=generate_period_name(start, end, period_type),
    )


def validate_period_fields(
    start_date: date | None,
    end_date: date | None,
    pay_date: date | None,
    period_type: str | None,
    working_days: int | None,
) -> list[str]:
    """Validate period fields, returning any errors."""
    errors: list[str] = []

    if start_date is None:
        errors.append("start_date is required")
    if end_date is None:
        errors.append("end_date is required")
    if pay_date is None:
        errors.append("pay_date is required")

    if start_date is not None and end_date is not None and start_date > end_date:
        errors.append("start_date must be on or before end_date")
    if end_date is not None and pay_date is not None and end_date > pay_date:
        errors.append("pay_date must be on or after end_date")

    valid_types = [t.value for t in PeriodType]
    if period_type not in valid_types:
        errors.append(f"Invalid period type '{period_type}'. Valid values: {', '.join(valid_types)}")

    if working_days is not None and working_days < 0:
        errors.append("working_days must be non-negative")

    return errors


class PeriodService:
    """Service for managing the payroll period lifecycle.

    Operations:
    - create_period / update_period / delete_period
    - lock_period: open|processing → locked, once every record is computed
    - close_period: locked → closed, once every record is paid or cancelled
    - reopen_period: processing|locked → open
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit = AuditService(session)
        self.totals = PeriodTotalsAggregator(session)

    async def create_period(self, data: PeriodData, actor: str = "system") -> PayrollPeriod:
        """Create an open period after validating dates and overlap."""
        errors = validate_period_fields(
            data.start_date, data.end_date, data.pay_date, data.period_type, data.working_days
        )
        if errors:
            raise PayrollValidationError(errors)
        await self._ensure_no_overlap(data.start_date, data.end_date)

        period = PayrollPeriod(
            name=data.name or generate_period_name(data.start_date, data.end_date, data.period_type),
            period_type=data.period_type,
            start_date=data.start_date,
            end_date=data.end_date,
            pay_date=data.pay_date,
            working_days=data.working_days,
            notes=data.notes,
            status=PeriodStatus.OPEN.value,
        )
        self.session.add(period)
        await self.session.flush()

        self.audit.record("payroll_period", period.id, "created", actor=actor, after=snapshot(period))
        logger.info("Created payroll period %s (%s)", period.id, period.name)
        return period

    async def update_period(
        self,
        period_id: int,
        changes: dict[str, Any],
        actor: str = "system",
    ) -> PayrollPeriod:
        """Edit period fields while the period is open or processing."""
        unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
        if unknown:
            raise PayrollValidationError([f"Field '{name}' cannot be updated" for name in unknown])

        period = await get_period(self.session, period_id, for_update=True)
        if period.status == PeriodStatus.CLOSED:
            raise PeriodClosedError(period.id)
        if not PeriodStateMachine.can_edit_period(period.status):
            raise PeriodLockedError(period.id)

        merged = {name: changes.get(name, getattr(period, name)) for name in EDITABLE_FIELDS}
        errors = validate_period_fields(
            merged["start_date"],
            merged["end_date"],
            merged["pay_date"],
            merged["period_type"],
            merged["working_days"],
        )
        if errors:
            raise PayrollValidationError(errors)
        await self._ensure_no_overlap(merged["start_date"], merged["end_date"], exclude_id=period.id)

        before = snapshot(period)
        for name in EDITABLE_FIELDS:
            setattr(period, name, merged[name])
        if not period.name:
            period.name = generate_period_name(period.start_date, period.end_date, period.period_type)

        await self.session.flush()
        self.audit.record(
            "payroll_period",
            period.id,
            "updated",
            actor=actor,
            before=before,
            after=snapshot(period),
        )
        logger.info("Updated payroll period %s", period.id)
        return period

    async def delete_period(self, period_id: int, actor: str = "system") -> None:
        """Delete an open period that owns no records."""
        period = await get_period(self.session, period_id, for_update=True)
        if period.status == PeriodStatus.CLOSED:
            raise PeriodClosedError(period.id)
        if not PeriodStateMachine.can_delete_period(period.status):
            raise InvalidStateError(
                f"Payroll period {period.id} must be open to delete (current: {period.status})"
            )

        record_count = (
            await self.session.execute(
                select(func.count()).select_from(PayrollRecord).where(
                    PayrollRecord.period_id == period.id
                )
            )
        ).scalar_one()
        if record_count:
            raise PeriodNotEmptyError(
                f"Payroll period {period.id} has {record_count} records and cannot be deleted"
            )

        before = snapshot(period)
        await self.session.delete(period)
        await self.session.flush()
        self.audit.record("payroll_period", period_id, "deleted", actor=actor, before=before)
        logger.info("Deleted payroll period %s", period_id)

    async def lock_period(self, period_id: int, actor: str = "system") -> PayrollPeriod:
        """Lock a period once it has records and all of them are computed.

        Locking an already locked period returns it unchanged.
        """
        period = await get_period(self.session, period_id, for_update=True)
        if period.status == PeriodStatus.CLOSED:
            raise AlreadyClosedError(period.id)
        if period.status == PeriodStatus.LOCKED:
            return period

        await self.totals.refresh_totals(period.id)
        records = await get_period_records(self.session, period.id)
        errors = PeriodStateMachine.validate_period_for_transition(
            period, records, PeriodStatus.LOCKED
        )
        if errors:
            raise NotAllComputedError(
                f"Cannot lock payroll period {period.id}: {'; '.join(errors)}"
            )

        return await self._transition(period, PeriodStatus.LOCKED, actor)

    async def close_period(self, period_id: int, actor: str = "system") -> PayrollPeriod:
        """Close a locked period once every record is paid or cancelled."""
        period = await get_period(self.session, period_id, for_update=True)
        if period.status == PeriodStatus.CLOSED:
            raise AlreadyClosedError(period.id)
        if period.status != PeriodStatus.LOCKED:
            raise NotLockedError(period.id, period.status)

        await self.totals.refresh_totals(period.id)
        records = await get_period_records(self.session, period.id)
        errors = PeriodStateMachine.validate_period_for_transition(
            period, records, PeriodStatus.CLOSED
        )
        if errors:
            raise UnpaidRecordsExistError(
                f"Cannot close payroll period {period.id}: {'; '.join(errors)}"
            )

        return await self._transition(period, PeriodStatus.CLOSED, actor)

    async def reopen_period(self, period_id: int, actor: str = "system") -> PayrollPeriod:
        """Move a processing or locked period back to open.

        Reopening an open period returns it unchanged.
        """
        period = await get_period(self.session, period_id, for_update=True)
        if period.status == PeriodStatus.CLOSED:
            raise AlreadyClosedError(period.id)
        if period.status == PeriodStatus.OPEN:
            return period

        return await self._transition(period, PeriodStatus.OPEN, actor)

    async def refresh_totals(self, period_id: int) -> PayrollPeriod:
        return await self.totals.refresh_totals(period_id)

    async def _transition(
        self,
        period: PayrollPeriod,
        to_status: PeriodStatus,
        actor: str,
    ) -> PayrollPeriod:
        """Apply a validated status change with its timestamps and audit entry."""
        from_status = period.status
        PeriodStateMachine.validate_transition(from_status, to_status)

        if to_status == PeriodStatus.LOCKED:
            period.locked_at = utcnow()
        elif to_status == PeriodStatus.CLOSED:
            period.closed_at = utcnow()
        elif PeriodStateMachine.is_reopen(from_status, to_status):
            period.locked_at = None

        period.status = to_status.value
        await self.session.flush()

        self.audit.record(
            "payroll_period",
            period.id,
            f"status_change:{from_status}:{to_status.value}",
            actor=actor,
            before={"status": from_status},
            after={"status": period.status},
        )
        logger.info(
            "Payroll period %s transitioned %s -> %s", period.id, from_status, period.status
        )
        return period

    async def _ensure_no_overlap(
        self,
        start_date: date,
        end_date: date,
        exclude_id: int | None = None,
    ) -> None:
        stmt = select(PayrollPeriod).where(
            PayrollPeriod.start_date <= end_date,
            PayrollPeriod.end_date >= start_date,
        )
        if exclude_id is not None:
            stmt = stmt.where(PayrollPeriod.id != exclude_id)
        overlapping = (await self.session.execute(stmt.limit(1))).scalar_one_or_none()
        if overlapping is not None:
            raise PayrollValidationError(
                f"Period {start_date} to {end_date} overlaps payroll period "
                f"{overlapping.id} ({overlapping.start_date} to {overlapping.end_date})"
            )
