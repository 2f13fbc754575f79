"""
REST API endpoints for table management.
"""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_admin
from app.database import get_session
from app.exceptions import NotFoundError
from app.schemas.table import (
    TableCreate,
    TableRead,
    TableStateLogRead,
    TableStatus,
    TableStatusUpdate,
    TableUpdate,
)
from app.services.identity_client import CurrentUser
from app.services.table_service import TableService
from app.services.table_state import get_table_state_history

router = APIRouter(prefix="/api/v1", tags=["tables"])


@router.get("/tables", response_model=List[TableRead])
async def list_tables(
    status: Optional[TableStatus] = Query(None, description="Filter by status (available, reserved, occupied)"),
    session: AsyncSession = Depends(get_session),
) -> List[TableRead]:
    """Get all tables, optionally filtered by status."""
    service = TableService(session)
    tables = await service.list_tables(status=status.value if status else None)
    return [TableRead.model_validate(t) for t in tables]


@router.get("/tables/available", response_model=List[TableRead])
async def list_available_tables(
    min_capacity: Optional[int] = Query(None, ge=1, description="Smallest acceptable capacity"),
    session: AsyncSession = Depends(get_session),
) -> List[TableRead]:
    """Tables currently available for seating, smallest first."""
    service = TableService(session)
    tables = await service.get_available_tables(min_capacity=min_capacity)
    return [TableRead.model_validate(t) for t in tables]


@router.get("/tables/stats")
async def get_table_stats(
    session: AsyncSession = Depends(get_session),
) -> dict:
    """
    Get table statistics.

    Returns counts by status.
    """
    service = TableService(session)
    counts = await service.count_by_status()

    return {
        "total": sum(counts.values()),
        "by_status": counts,
        "available": counts.get("available", 0),
        "reserved": counts.get("reserved", 0),
        "occupied": counts.get("occupied", 0),
    }


@router.get("/tables/{table_id}", response_model=TableRead)
async def get_table(
    table_id: UUID,
    session: AsyncSession = Depends(get_session),
) -> TableRead:
    """Get a single table by ID."""
    service = TableService(session)
    table = await service.get_table_by_id(table_id)

    if table is None:
        raise NotFoundError("Table not found")

    return TableRead.model_validate(table)


@router.post("/tables", response_model=TableRead, status_code=201)
async def create_table(
    data: TableCreate,
    admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> TableRead:
    """Create a new table (admin)."""
    service = TableService(session)
    table = await service.create_table(table_number=data.table_number, capacity=data.capacity)
    return TableRead.model_validate(table)


@router.patch("/tables/{table_id}", response_model=TableRead)
async def update_table(
    table_id: UUID,
    data: TableUpdate,
    admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> TableRead:
    """Update table properties (not status - use PATCH /tables/{id}/status for that)."""
    service = TableService(session)
    table = await service.update_table(table_id, data.model_dump(exclude_unset=True))
    return TableRead.model_validate(table)


@router.patch("/tables/{table_id}/status", response_model=TableRead)
async def override_table_status(
    table_id: UUID,
    data: TableStatusUpdate,
    admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> TableRead:
    """
    Override table status (admin).

    This creates a TableStateLog entry for audit trail. The next reservation
    change or reconciliation run re-derives the status.
    """
    service = TableService(session)
    table = await service.set_status(table_id, data.status.value, reason=data.reason)
    return TableRead.model_validate(table)


@router.delete("/tables/{table_id}", status_code=204)
async def delete_table(
    table_id: UUID,
    admin: CurrentUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> None:
    """Delete a table and its reservations (admin)."""
    service = TableService(session)
    await service.delete_table(table_id)


@router.get("/tables/{table_id}/history", response_model=List[TableStateLogRead])
async def get_status_history(
    table_id: UUID,
    limit: int = Query(50, le=200, description="Max records to return"),
    session: AsyncSession = Depends(get_session),
) -> List[TableStateLogRead]:
    """
    Get status change history for a table.

    Each entry names the reservation that drove the change, if any.
    """
    logs = await get_table_state_history(session, table_id, limit)
    return [TableStateLogRead.model_validate(log) for log in logs]
