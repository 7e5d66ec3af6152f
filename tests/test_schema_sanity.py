"""Schema sanity checks.

Validates that the tables, constraints and foreign key actions the payroll
services rely on exist.
"""

from datetime import date, datetime

import pytest
from sqlalchemy import delete, text
from sqlalchemy.exc import IntegrityError

from attendance_payroll.database import create_schema
from attendance_payroll.models import AttendanceLog, PayrollPeriod, PayrollRecord

pytestmark = pytest.mark.asyncio


class TestSchemaTables:
    """Test schema creation."""

    async def test_create_schema_is_repeatable(self, engine):
        """Creating the schema twice should leave every table in place."""
        tables = await create_schema(engine)

        assert tables.index("employee") < tables.index("payroll_record")
        assert tables.index("payroll_period") < tables.index("payroll_record")
        assert set(tables) >= {
            "attendance_log",
            "audit_event",
            "deduction",
            "overtime_log",
        }

        async with engine.connect() as conn:
            result = await conn.execute(
                text("SELECT name FROM sqlite_master WHERE type = 'table'")
            )
            existing = {row[0] for row in result}
        assert set(tables) <= existing


class TestConstraints:
    """Test constraints enforced by the database."""

    async def test_one_record_per_employee_and_period(self, seed, session):
        employee = await seed.employee()
        period = await seed.period()
        await seed.add(PayrollRecord(employee_id=employee.id, period_id=period.id))

        session.add(PayrollRecord(employee_id=employee.id, period_id=period.id))
        with pytest.raises(IntegrityError):
            await session.flush()

    async def test_period_dates_ordered(self, session):
        session.add(
            PayrollPeriod(
                name="backwards",
                start_date=date(2026, 1, 15),
                end_date=date(2026, 1, 1),
                pay_date=date(2026, 1, 20),
            )
        )
        with pytest.raises(IntegrityError):
            await session.flush()

    async def test_unknown_attendance_status_rejected(self, seed, session):
        employee = await seed.employee()
        session.add(
            AttendanceLog(
                employee_id=employee.id,
                timestamp=datetime(2026, 1, 5, 8, 0),
                status="sick",
            )
        )
        with pytest.raises(IntegrityError):
            await session.flush()

    async def test_record_delete_unclaims_facts(self, seed, session):
        """Deleting a record directly still leaves its facts unclaimed."""
        employee = await seed.employee()
        period = await seed.period()
        record = PayrollRecord(employee_id=employee.id, period_id=period.id)
        await seed.add(record)
        log = await seed.attendance(employee, date(2026, 1, 5), payroll_record_id=record.id)

        await session.execute(delete(PayrollRecord).where(PayrollRecord.id == record.id))
        await session.commit()

        assert (await seed.get(AttendanceLog, log.id)).payroll_record_id is None
