"""Pytest fixtures for attendance payroll tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from attendance_payroll.calculators.deduction_policy import flat_rate_policy
from attendance_payroll.database import make_session_factory
from attendance_payroll.models import (
    AttendanceLog,
    Base,
    Employee,
    OvertimeLog,
    PayrollPeriod,
)
from attendance_payroll.services.payroll_service import PayrollService

# In-memory SQLite shared by every session of a test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Tax policy used by most tests: 10% of gross
TEST_POLICY = flat_rate_policy(Decimal("0.10"))


@pytest_asyncio.fixture
async def engine():
    """Create a fresh test database for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs work on pysqlite
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for tests that drive the lower level services directly."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def payroll(session_factory) -> PayrollService:
    """Payroll service with a 10% tax policy."""
    return PayrollService(session_factory, deduction_policy=TEST_POLICY)


class Seeder:
    """Writes directory data and attendance facts in committed transactions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self._employee_seq = 0

    async def add(self, *objects: Any) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                session.add_all(objects)

    async def employee(self, **overrides: Any) -> Employee:
        self._employee_seq += 1
        values = {
            "employee_number": f"EMP-{self._employee_seq:04d}",
            "first_name": "Test",
            "last_name": f"Employee {self._employee_seq}",
            "daily_rate": Decimal("1000.00"),
            "hourly_rate": Decimal("125.00"),
            "overtime_rate": Decimal("1.25"),
            "status": "active",
        }
        values.update(overrides)
        employee = Employee(**values)
        await self.add(employee)
        return employee

    async def period(
        self,
        start_date: date = date(2026, 1, 1),
        end_date: date = date(2026, 1, 15),
        pay_date: date | None = None,
        **overrides: Any,
    ) -> PayrollPeriod:
        values = {
            "name": f"Period {start_date:%b %d} - {end_date:%b %d}",
            "period_type": "semi-monthly",
            "start_date": start_date,
            "end_date": end_date,
            "pay_date": pay_date or end_date + timedelta(days=5),
            "status": "open",
        }
        values.update(overrides)
        period = PayrollPeriod(**values)
        await self.add(period)
        return period

    async def attendance(
        self,
        employee: Employee,
        day: date,
        status: str = "present",
        **overrides: Any,
    ) -> AttendanceLog:
        values = {
            "employee_id": employee.id,
            "timestamp": datetime.combine(day, time(8, 0)),
            "status": status,
            "hours_worked": Decimal("4") if status == "half-day" else Decimal("8"),
        }
        values.update(overrides)
        log = AttendanceLog(**values)
        await self.add(log)
        return log

    async def attendance_days(
        self,
        employee: Employee,
        first_day: date,
        count: int,
        status: str = "present",
    ) -> list[AttendanceLog]:
        return [
            await self.attendance(employee, first_day + timedelta(days=offset), status)
            for offset in range(count)
        ]

    async def overtime(
        self,
        employee: Employee,
        day: date,
        hours: Decimal | str = "2",
        approval_status: str = "approved",
        **overrides: Any,
    ) -> OvertimeLog:
        values = {
            "employee_id": employee.id,
            "work_date": day,
            "hours": Decimal(hours),
            "approval_status": approval_status,
        }
        values.update(overrides)
        log = OvertimeLog(**values)
        await self.add(log)
        return log

    async def get(self, model: type, entity_id: int) -> Any:
        """Load a fresh copy of a row."""
        async with self.session_factory() as session:
            return await session.get(model, entity_id)

    async def all(self, model: type, *criteria: Any) -> list[Any]:
        async with self.session_factory() as session:
            result = await session.execute(select(model).where(*criteria).order_by(model.id))
            return list(result.scalars().all())


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client bound to the test database."""
    from attendance_payroll.api.app import create_app

    app = create_app(session_factory=session_factory, deduction_policy=TEST_POLICY)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
