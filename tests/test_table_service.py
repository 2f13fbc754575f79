"""Tests for TableService."""
from __future__ import annotations

from datetime import time
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError, ValidationError
from app.models.metrics import TableStateLog
from app.models.reservation import Reservation
from app.models.table import Table
from app.services.table_service import TableService
from app.services.table_state import get_table_state_history, refresh_table_status


@pytest_asyncio.fixture
async def table_service(db_session: AsyncSession) -> TableService:
    """Create a TableService instance."""
    return TableService(db_session)


class TestGetAvailableTables:
    """Tests for get_available_tables method."""

    async def test_filters_by_status(
        self,
        db_session: AsyncSession,
        table_service: TableService,
        sample_tables,
    ):
        """Only returns tables with status='available'."""
        sample_tables[0].status = "occupied"
        sample_tables[3].status = "reserved"
        await db_session.commit()

        tables = await table_service.get_available_tables()

        assert {t.table_number for t in tables} == {2, 3}

    async def test_filters_by_capacity(
        self,
        table_service: TableService,
        sample_tables,
    ):
        """Only returns tables with capacity >= min_capacity, smallest first."""
        tables = await table_service.get_available_tables(min_capacity=4)

        assert [t.capacity for t in tables] == [4, 4, 6]
        assert 1 not in {t.table_number for t in tables}


class TestTableAdministration:
    """Tests for creating, updating and deleting tables."""

    async def test_create_table_starts_available(self, table_service: TableService):
        table = await table_service.create_table(table_number=12, capacity=8)

        assert table.id is not None
        assert table.status == "available"

    async def test_duplicate_table_number_is_rejected(
        self, table_service: TableService, sample_tables
    ):
        with pytest.raises(ValidationError):
            await table_service.create_table(table_number=1, capacity=2)

    async def test_update_capacity(self, table_service: TableService, sample_tables):
        table = await table_service.update_table(sample_tables[0].id, {"capacity": 3})
        assert table.capacity == 3

    async def test_update_to_taken_number_is_rejected(
        self, table_service: TableService, sample_tables
    ):
        with pytest.raises(ValidationError):
            await table_service.update_table(sample_tables[0].id, {"table_number": 2})

    async def test_update_unknown_table(self, table_service: TableService):
        with pytest.raises(NotFoundError):
            await table_service.update_table(uuid4(), {"capacity": 3})

    async def test_delete_removes_reservations(
        self,
        db_session: AsyncSession,
        table_service: TableService,
        sample_tables,
        make_reservation,
    ):
        table = sample_tables[1]
        await make_reservation(table, time(18, 0))

        await table_service.delete_table(table.id)

        assert await table_service.get_table_by_id(table.id) is None
        remaining = await db_session.execute(
            select(Reservation).where(Reservation.table_id == table.id)
        )
        assert remaining.scalars().all() == []

    async def test_count_by_status(
        self,
        db_session: AsyncSession,
        table_service: TableService,
        sample_tables,
    ):
        sample_tables[0].status = "occupied"
        await db_session.commit()

        counts = await table_service.count_by_status()

        assert counts == {"available": 3, "occupied": 1}


class TestSetStatus:
    """Tests for the admin override and status history."""

    async def test_creates_state_log(
        self,
        db_session: AsyncSession,
        table_service: TableService,
        sample_tables,
    ):
        """Status change creates an audit log entry."""
        table = sample_tables[1]

        await table_service.set_status(table.id, "occupied", reason="Walk-in seated")

        result = await db_session.execute(
            select(TableStateLog).where(TableStateLog.table_id == table.id)
        )
        logs = result.scalars().all()

        assert len(logs) == 1
        assert logs[0].previous_state == "available"
        assert logs[0].new_state == "occupied"
        assert logs[0].source == "admin"
        assert logs[0].reason == "Walk-in seated"
        assert table.status_updated_at is not None

    async def test_same_status_is_not_logged(
        self,
        db_session: AsyncSession,
        table_service: TableService,
        sample_tables,
    ):
        table = sample_tables[1]

        await table_service.set_status(table.id, "available")

        history = await get_table_state_history(db_session, table.id)
        assert history == []

    async def test_unknown_status_is_rejected(
        self, table_service: TableService, sample_tables
    ):
        with pytest.raises(ValidationError):
            await table_service.set_status(sample_tables[1].id, "dirty")

    async def test_unknown_table(self, table_service: TableService):
        with pytest.raises(NotFoundError):
            await table_service.set_status(uuid4(), "occupied")

    async def test_override_is_replaced_by_next_derivation(
        self,
        db_session: AsyncSession,
        table_service: TableService,
        sample_tables,
        now,
    ):
        table = sample_tables[1]
        await table_service.set_status(table.id, "occupied")

        decision, changed = await refresh_table_status(
            db_session, table, now, source="reconciler"
        )

        assert decision.status == "available"
        assert changed is True
        history = await get_table_state_history(db_session, table.id)
        assert {log.source for log in history} == {"admin", "reconciler"}

    async def test_history_is_most_recent_first(
        self,
        db_session: AsyncSession,
        table_service: TableService,
        sample_tables,
    ):
        table: Table = sample_tables[1]
        await table_service.set_status(table.id, "reserved")
        await table_service.set_status(table.id, "occupied")
        await table_service.set_status(table.id, "available")

        history = await get_table_state_history(db_session, table.id, limit=2)

        assert [log.new_state for log in history] == ["available", "occupied"]
