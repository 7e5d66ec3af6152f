"""Claiming attendance and overtime facts for a payroll record.

A fact is claimed by writing the record id into its ``payroll_record_id``.
Claims use a conditional update that only touches unclaimed rows, so two
computations racing for the same fact cannot both win.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.exceptions import ConcurrencyConflictError
from attendance_payroll.models import AttendanceLog, OvertimeLog

logger = logging.getLogger(__name__)

FactModel = type[AttendanceLog] | type[OvertimeLog]


def visible_to(model: FactModel, record_id: int | None):
    """Filter for facts a computation may count.

    Unclaimed facts are always visible; facts already claimed by the computing
    record stay visible so recomputation sees what it owns.
    """
    if record_id is None:
        return model.payroll_record_id.is_(None)
    return or_(model.payroll_record_id.is_(None), model.payroll_record_id == record_id)


async def claim_facts(
    session: AsyncSession,
    model: FactModel,
    record_id: int,
    fact_ids: Iterable[int],
) -> int:
    """Link unclaimed facts to ``record_id``.

    ``fact_ids`` must be the facts that were unclaimed when selected. Raises
    ConcurrencyConflictError when another writer claimed any of them first.
    Returns count of claimed facts.
    """
    ids = sorted(set(fact_ids))
    if not ids:
        return 0

    result = await session.execute(
        update(model)
        .where(
            model.id.in_(ids),
            model.payroll_record_id.is_(None),
        )
        .values(payroll_record_id=record_id)
    )
    claimed = result.rowcount or 0
    if claimed != len(ids):
        logger.warning(
            "Claim conflict on %s for record %s: expected %d, claimed %d",
            model.__tablename__,
            record_id,
            len(ids),
            claimed,
        )
        raise ConcurrencyConflictError(
            f"{len(ids) - claimed} {model.__tablename__} facts were claimed by "
            f"another computation"
        )
    return claimed


async def release_stale_claims(
    session: AsyncSession,
    model: FactModel,
    record_id: int,
    keep_ids: Iterable[int] = (),
) -> int:
    """Unlink facts held by ``record_id`` that are not in ``keep_ids``.

    Returns count of released facts.
    """
    stmt = update(model).where(model.payroll_record_id == record_id)
    keep = sorted(set(keep_ids))
    if keep:
        stmt = stmt.where(model.id.not_in(keep))

    result = await session.execute(
        stmt.values(payroll_record_id=None)
    )
    return result.rowcount or 0
