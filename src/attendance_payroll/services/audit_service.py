"""Audit trail writer."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.models import AuditEvent


def _json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def snapshot(obj: Any, fields: list[str] | None = None) -> dict[str, Any]:
    """JSON-safe dict of a model's columns, or of ``fields`` only."""
    names = fields or [c.name for c in obj.__table__.columns]
    return {name: _json_value(getattr(obj, name)) for name in names}


class AuditService:
    """Records audit events inside the caller's transaction."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def record(
        self,
        entity_type: str,
        entity_id: int,
        action: str,
        actor: str = "system",
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
    ) -> AuditEvent:
        """Add an audit event to the session."""
        event = AuditEvent(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor=actor or "system",
            before_json=before,
            after_json=after,
        )
        self.session.add(event)
        return event

    async def get_events(self, entity_type: str, entity_id: int) -> list[AuditEvent]:
        """Get audit events for an entity, oldest first."""
        await self.session.flush()
        result = await self.session.execute(
            select(AuditEvent)
            .where(
                AuditEvent.entity_type == entity_type,
                AuditEvent.entity_id == entity_id,
            )
            .order_by(AuditEvent.id)
        )
        return list(result.scalars().all())
