"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.services.payroll_service import PayrollService


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with request.app.state.session_factory() as session:
        yield session


def get_payroll_service(request: Request) -> PayrollService:
    """The application's payroll service."""
    return request.app.state.payroll_service


async def get_actor(x_actor: Annotated[str | None, Header()] = None) -> str:
    """Free-text user tag recorded on audit events."""
    return x_actor.strip() if x_actor and x_actor.strip() else "system"


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Payroll = Annotated[PayrollService, Depends(get_payroll_service)]
Actor = Annotated[str, Depends(get_actor)]
