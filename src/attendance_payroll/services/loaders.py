"""Row loaders shared by the payroll services.

Locked reads flush pending changes first and then overwrite the identity map
with the row as of the lock, so guards always see current data.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.exceptions import NotFoundError
from attendance_payroll.models import Deduction, Employee, PayrollPeriod, PayrollRecord


def _locked(stmt, for_update: bool, for_share: bool):
    if for_update:
        return stmt.with_for_update().execution_options(populate_existing=True)
    if for_share:
        return stmt.with_for_update(read=True).execution_options(populate_existing=True)
    return stmt


async def get_employee(session: AsyncSession, employee_id: int) -> Employee:
    employee = await session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError("Employee", employee_id)
    return employee


async def get_period(
    session: AsyncSession,
    period_id: int,
    *,
    for_update: bool = False,
    for_share: bool = False,
) -> PayrollPeriod:
    """Load a payroll period, optionally row-locked. Raises NotFoundError."""
    if for_update or for_share:
        await session.flush()
    stmt = _locked(
        select(PayrollPeriod).where(PayrollPeriod.id == period_id), for_update, for_share
    )
    period = (await session.execute(stmt)).scalar_one_or_none()
    if period is None:
        raise NotFoundError("Payroll period", period_id)
    return period


async def get_record(
    session: AsyncSession,
    record_id: int,
    *,
    for_update: bool = False,
) -> PayrollRecord:
    """Load a payroll record, optionally row-locked. Raises NotFoundError."""
    if for_update:
        await session.flush()
    stmt = _locked(select(PayrollRecord).where(PayrollRecord.id == record_id), for_update, False)
    record = (await session.execute(stmt)).scalar_one_or_none()
    if record is None:
        raise NotFoundError("Payroll record", record_id)
    return record


async def find_record(
    session: AsyncSession,
    employee_id: int,
    period_id: int,
    *,
    for_update: bool = False,
) -> PayrollRecord | None:
    """Find the record for an (employee, period) pair, if any."""
    if for_update:
        await session.flush()
    stmt = _locked(
        select(PayrollRecord).where(
            PayrollRecord.employee_id == employee_id,
            PayrollRecord.period_id == period_id,
        ),
        for_update,
        False,
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def get_period_records(session: AsyncSession, period_id: int) -> list[PayrollRecord]:
    """Re-read every record of a period from the database."""
    await session.flush()
    result = await session.execute(
        select(PayrollRecord)
        .where(PayrollRecord.period_id == period_id)
        .order_by(PayrollRecord.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_record_deductions(session: AsyncSession, record_id: int) -> list[Deduction]:
    await session.flush()
    result = await session.execute(
        select(Deduction)
        .where(Deduction.payroll_record_id == record_id)
        .order_by(Deduction.id)
    )
    return list(result.scalars().all())
