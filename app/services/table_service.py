"""Service for table operations."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError, ValidationError
from app.models.reservation import Reservation
from app.models.table import Table
from app.services.table_state import set_table_status
from app.services.table_status import AVAILABLE

logger = logging.getLogger(__name__)


class TableService:
    """Service for table administration and status reads."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_tables(self, status: Optional[str] = None) -> Sequence[Table]:
        """All tables ordered by number, optionally filtered by status."""
        stmt = select(Table).order_by(Table.table_number)
        if status:
            stmt = stmt.where(Table.status == status)

        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def get_available_tables(
        self,
        min_capacity: Optional[int] = None,
    ) -> Sequence[Table]:
        """
        Get tables that are available for seating right now.

        Filters:
        - status = 'available'
        - capacity >= min_capacity (if given)

        Returns tables sorted by capacity (smallest first).
        """
        stmt = (
            select(Table)
            .where(Table.status == AVAILABLE)
            .order_by(Table.capacity, Table.table_number)
        )
        if min_capacity is not None:
            stmt = stmt.where(Table.capacity >= min_capacity)

        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def get_table_by_id(self, table_id: UUID) -> Optional[Table]:
        """Get a single table by ID."""
        stmt = select(Table).where(Table.id == table_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _require_table(self, table_id: UUID) -> Table:
        table = await self.get_table_by_id(table_id)
        if table is None:
            raise NotFoundError(f"Table {table_id} not found")
        return table

    async def _ensure_number_free(self, table_number: int) -> None:
        result = await self.session.execute(
            select(Table.id).where(Table.table_number == table_number)
        )
        if result.first() is not None:
            raise ValidationError(f"Table number {table_number} already exists")

    async def create_table(self, table_number: int, capacity: int) -> Table:
        """Create a table; new tables start out available."""
        if capacity is None or capacity < 1:
            raise ValidationError("capacity must be a positive integer")
        await self._ensure_number_free(table_number)

        table = Table(table_number=table_number, capacity=capacity, status=AVAILABLE)
        self.session.add(table)
        await self.session.flush()

        logger.info("Table #%s created (capacity %s)", table_number, capacity)
        return table

    async def update_table(self, table_id: UUID, changes: Dict[str, Any]) -> Table:
        """Update table number/capacity. Status changes go through set_status."""
        table = await self._require_table(table_id)

        number = changes.get("table_number")
        if number is not None and number != table.table_number:
            await self._ensure_number_free(number)
            table.table_number = number

        capacity = changes.get("capacity")
        if capacity is not None:
            if capacity < 1:
                raise ValidationError("capacity must be a positive integer")
            table.capacity = capacity

        await self.session.flush()
        return table

    async def set_status(
        self,
        table_id: UUID,
        status: str,
        reason: Optional[str] = None,
    ) -> Table:
        """Admin override of the stored status."""
        return await set_table_status(
            self.session,
            table_id=table_id,
            new_state=getattr(status, "value", status),
            source="admin",
            reason=reason,
        )

    async def delete_table(self, table_id: UUID) -> None:
        """Delete a table together with its reservations and status history."""
        table = await self._require_table(table_id)

        await self.session.execute(
            delete(Reservation).where(Reservation.table_id == table_id)
        )
        await self.session.delete(table)
        await self.session.flush()

        logger.info("Table #%s deleted", table.table_number)

    async def count_by_status(self) -> Dict[str, int]:
        """Number of tables per status."""
        result = await self.session.execute(
            select(Table.status, func.count(Table.id)).group_by(Table.status)
        )
        return {status: count for status, count in result.all()}
