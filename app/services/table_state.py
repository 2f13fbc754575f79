"""Table status persistence.

Writes derived or overridden statuses to the table row and keeps an audit
trail in TableStateLog. Writes only happen when the status actually changes.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError, ValidationError
from app.models.metrics import TableStateLog
from app.models.reservation import Reservation
from app.models.table import Table
from app.services.table_status import (
    DEFAULT_PRE_ARRIVAL_BUFFER_MINUTES,
    TABLE_STATUSES,
    StatusDecision,
    derive_table_status,
)

logger = logging.getLogger(__name__)


async def apply_table_status(
    session: AsyncSession,
    table: Table,
    decision: StatusDecision,
    source: str,
) -> bool:
    """
    Persist a status decision if it differs from the stored one.

    Args:
        session: Database session
        table: Table row to update
        decision: Status to store, with the reservation that drove it
        source: Origin of the change ("reservation", "reconciler", "admin")

    Returns:
        True if a write happened
    """
    previous_state = table.status
    if previous_state == decision.status:
        return False

    state_log = TableStateLog(
        table_id=table.id,
        previous_state=previous_state,
        new_state=decision.status,
        source=source,
        reservation_id=decision.reservation_id,
        reason=decision.reason,
    )
    session.add(state_log)

    table.status = decision.status
    table.status_updated_at = datetime.utcnow()

    await session.flush()

    logger.info(
        "Table #%s: %s -> %s (%s; reservation=%s, source=%s)",
        table.table_number,
        previous_state,
        decision.status,
        decision.reason,
        decision.reservation_id,
        source,
    )
    return True


async def get_confirmed_reservations(
    session: AsyncSession,
    table_id: UUID,
    day: date,
) -> List[Reservation]:
    """Confirmed reservations for a table on one day."""
    result = await session.execute(
        select(Reservation)
        .where(Reservation.table_id == table_id)
        .where(Reservation.reservation_date == day)
        .where(Reservation.status == "confirmed")
        .order_by(Reservation.reservation_time)
    )
    return list(result.scalars().all())


async def refresh_table_status(
    session: AsyncSession,
    table: Table,
    now: datetime,
    source: str,
    buffer_minutes: int = DEFAULT_PRE_ARRIVAL_BUFFER_MINUTES,
) -> Tuple[StatusDecision, bool]:
    """Re-derive a table's status at ``now`` and store it if it changed."""
    reservations = await get_confirmed_reservations(session, table.id, now.date())
    decision = derive_table_status(reservations, now, buffer_minutes=buffer_minutes)
    changed = await apply_table_status(session, table, decision, source=source)
    return decision, changed


async def set_table_status(
    session: AsyncSession,
    table_id: UUID,
    new_state: str,
    source: str = "admin",
    reason: Optional[str] = None,
) -> Table:
    """
    Explicitly override a table's status and log the change.

    The next derivation (request-triggered or reconciler) may overwrite it.

    Raises:
        ValidationError: If the status is unknown
        NotFoundError: If table not found
    """
    if new_state not in TABLE_STATUSES:
        raise ValidationError(f"Unknown table status '{new_state}'")

    result = await session.execute(
        select(Table).where(Table.id == table_id).with_for_update()
    )
    table = result.scalar_one_or_none()

    if table is None:
        raise NotFoundError(f"Table with id {table_id} not found")

    await apply_table_status(
        session,
        table,
        StatusDecision(status=new_state, reason=reason or "Manual override"),
        source=source,
    )
    return table


async def get_table_state_history(
    session: AsyncSession,
    table_id: UUID,
    limit: int = 50,
) -> list[TableStateLog]:
    """
    Get status change history for a table.

    Args:
        session: Database session
        table_id: UUID of the table
        limit: Max number of records to return

    Returns:
        List of TableStateLog entries, most recent first
    """
    result = await session.execute(
        select(TableStateLog)
        .where(TableStateLog.table_id == table_id)
        .order_by(TableStateLog.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
