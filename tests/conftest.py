"""
Pytest configuration and fixtures.

This module provides fixtures that simulate a restaurant's evening service:
- Tables of various capacities (a 2-top, two 4-tops, a 6-top)
- A fixed local "now" of 13:05 on a service day
- Helpers to place reservations directly in storage
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date, datetime, time
from typing import AsyncGenerator, Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.models import Reservation, Table, TableStateLog  # noqa: F401


# Use SQLite for testing (in-memory, shared across sessions of one test)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

SERVICE_DAY = date(2026, 1, 20)


@pytest.fixture
def service_day() -> date:
    return SERVICE_DAY


@pytest.fixture
def now() -> datetime:
    """Lunchtime on the service day."""
    return datetime.combine(SERVICE_DAY, time(13, 5))


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(db_engine) -> async_sessionmaker:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def session_context(session_factory):
    """Stand-in for get_session_context bound to the test engine."""

    @asynccontextmanager
    async def _context() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return _context


@pytest_asyncio.fixture
async def sample_tables(db_session: AsyncSession) -> list[Table]:
    """
    Create tables with realistic distribution:
    - #1: 2-seat window table
    - #2, #3: standard 4-tops
    - #4: 6-seat family table
    """
    tables = [
        Table(table_number=1, capacity=2, status="available"),
        Table(table_number=2, capacity=4, status="available"),
        Table(table_number=3, capacity=4, status="available"),
        Table(table_number=4, capacity=6, status="available"),
    ]

    for table in tables:
        table.id = uuid4()
        db_session.add(table)
    await db_session.commit()
    for table in tables:
        await db_session.refresh(table)
    return tables


@pytest.fixture
def make_reservation(db_session: AsyncSession):
    """Insert a reservation directly, bypassing the service checks."""

    async def _make(
        table: Table,
        start: time,
        duration_minutes: int = 60,
        status: str = "confirmed",
        day: date = SERVICE_DAY,
        user_id: str = "user-1",
        guest_count: int = 2,
        notes: Optional[str] = None,
    ) -> Reservation:
        reservation = Reservation(
            id=uuid4(),
            table_id=table.id,
            user_id=user_id,
            reservation_date=day,
            reservation_time=start,
            duration_minutes=duration_minutes,
            guest_count=guest_count,
            status=status,
            notes=notes,
        )
        db_session.add(reservation)
        await db_session.commit()
        await db_session.refresh(reservation)
        return reservation

    return _make
