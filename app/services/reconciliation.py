"""Periodic reconciliation of reservations and table statuses.

Elapsed time is not an event: nothing marks a reservation as finished or
releases its table unless something polls. Each run does two passes:

1. Expire pass: confirmed reservations whose window has fully elapsed are
   completed through ReservationService.complete.
2. Reconcile pass: every table's status is re-derived at ``now`` and stored
   only when it changed.

Every reservation and every table is its own unit of work with its own
session, so one bad record is logged and skipped without stalling the sweep.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import get_session_context
from app.models.reservation import Reservation
from app.models.table import Table
from app.services.clock import local_now
from app.services.reservation_service import ReservationService
from app.services.table_state import refresh_table_status

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationResult:
    """Result from one reconciliation run."""

    success: bool
    reservations_completed: int = 0
    tables_checked: int = 0
    tables_updated: int = 0
    errors: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> float:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return 0.0


def is_elapsed(reservation: Reservation, now: datetime) -> bool:
    """True once the reservation's window has fully passed."""
    today = now.date()
    if reservation.reservation_date < today:
        return True
    if reservation.reservation_date == today:
        return reservation.end_minute < now.hour * 60 + now.minute
    return False


async def find_expired_reservation_ids(session: AsyncSession, now: datetime) -> List[UUID]:
    """Ids of confirmed reservations whose window has elapsed, oldest first."""
    result = await session.execute(
        select(Reservation)
        .where(Reservation.status == "confirmed")
        .where(Reservation.reservation_date <= now.date())
        .order_by(Reservation.reservation_date, Reservation.reservation_time)
    )
    return [r.id for r in result.scalars().all() if is_elapsed(r, now)]


class ReconciliationJob:
    """Expire elapsed reservations, then re-derive every table's status."""

    def __init__(
        self,
        session_context=get_session_context,
        buffer_minutes: Optional[int] = None,
    ) -> None:
        self._session_context = session_context
        self.buffer_minutes = (
            buffer_minutes
            if buffer_minutes is not None
            else get_settings().pre_arrival_buffer_minutes
        )

    async def run(
        self,
        now: Optional[datetime] = None,
        stop_event: Optional[asyncio.Event] = None,
    ) -> ReconciliationResult:
        """
        Run both passes once.

        Args:
            now: Wall-clock time to reconcile against (defaults to local now)
            stop_event: When set, the run stops after the current unit of work

        Returns:
            ReconciliationResult with counts and per-item errors
        """
        now = now or local_now()
        result = ReconciliationResult(success=False, started_at=datetime.utcnow())

        try:
            await self._expire_pass(now, result, stop_event)
            await self._reconcile_pass(now, result, stop_event)
        except Exception as e:
            logger.exception("Reconciliation pass failed")
            result.errors.append(f"Pass failed: {e}")
            result.completed_at = datetime.utcnow()
            return result

        result.success = len(result.errors) == 0
        result.completed_at = datetime.utcnow()

        logger.info(
            "Reconciliation complete at %s: %s reservations completed, "
            "%s/%s tables updated, %s errors",
            now.strftime("%Y-%m-%d %H:%M"),
            result.reservations_completed,
            result.tables_updated,
            result.tables_checked,
            len(result.errors),
        )
        return result

    @staticmethod
    def _stopping(stop_event: Optional[asyncio.Event]) -> bool:
        return stop_event is not None and stop_event.is_set()

    async def _expire_pass(
        self,
        now: datetime,
        result: ReconciliationResult,
        stop_event: Optional[asyncio.Event],
    ) -> None:
        async with self._session_context() as session:
            expired_ids = await find_expired_reservation_ids(session, now)

        for reservation_id in expired_ids:
            if self._stopping(stop_event):
                logger.info("Stop requested; leaving remaining expired reservations")
                return
            try:
                async with self._session_context() as session:
                    service = ReservationService(session, buffer_minutes=self.buffer_minutes)
                    await service.complete(reservation_id, now=now, source="reconciler")
                result.reservations_completed += 1
                logger.info("Auto-completed expired reservation %s", reservation_id)
            except Exception as e:
                logger.error("Error completing reservation %s: %s", reservation_id, e)
                result.errors.append(f"Reservation {reservation_id}: {e}")

    async def _reconcile_pass(
        self,
        now: datetime,
        result: ReconciliationResult,
        stop_event: Optional[asyncio.Event],
    ) -> None:
        async with self._session_context() as session:
            table_result = await session.execute(
                select(Table.id).order_by(Table.table_number)
            )
            table_ids = list(table_result.scalars().all())

        for table_id in table_ids:
            if self._stopping(stop_event):
                logger.info("Stop requested; leaving remaining tables")
                return
            try:
                async with self._session_context() as session:
                    table_result = await session.execute(
                        select(Table).where(Table.id == table_id).with_for_update()
                    )
                    table = table_result.scalar_one_or_none()
                    if table is None:
                        continue
                    _, changed = await refresh_table_status(
                        session,
                        table,
                        now,
                        source="reconciler",
                        buffer_minutes=self.buffer_minutes,
                    )
                result.tables_checked += 1
                if changed:
                    result.tables_updated += 1
            except Exception as e:
                logger.error("Error reconciling table %s: %s", table_id, e)
                result.errors.append(f"Table {table_id}: {e}")


class ReconciliationScheduler:
    """Runs the reconciliation job on a fixed interval, one run at a time."""

    def __init__(
        self,
        job: Optional[ReconciliationJob] = None,
        interval_seconds: Optional[int] = None,
    ) -> None:
        self._job = job or ReconciliationJob()
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else get_settings().reconcile_interval_seconds
        )
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """True while a reconciliation run is in progress."""
        return self._running

    async def run_once(self, now: Optional[datetime] = None) -> Optional[ReconciliationResult]:
        """Run a pass now, or return None if one is already in progress."""
        if self._running:
            logger.warning("Reconciliation already in progress; skipping this run")
            return None

        self._running = True
        try:
            result = await self._job.run(now=now, stop_event=self._stop_event)
        finally:
            self._running = False

        if not result.success:
            logger.warning("Reconciliation finished with errors: %s", result.errors)
        return result

    async def run(self) -> None:
        while not self._stop_event.is_set():
            start_time = time.monotonic()
            await self.run_once()
            elapsed = time.monotonic() - start_time
            sleep_seconds = max(0.0, self.interval_seconds - elapsed)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=sleep_seconds)
            except asyncio.TimeoutError:
                pass

    async def start(self) -> None:
        if self._task is not None and not self._task.done():
            logger.warning("Reconciliation scheduler already started")
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run())
        logger.info("Reconciliation scheduler started (every %ss).", self.interval_seconds)

    async def stop(self) -> None:
        """Signal the loop to stop and wait for the current unit of work."""
        self._stop_event.set()
        if self._task:
            await self._task
            self._task = None
        logger.info("Reconciliation scheduler stopped.")


_scheduler: Optional[ReconciliationScheduler] = None


def get_reconciliation_scheduler() -> ReconciliationScheduler:
    """Process-wide scheduler shared by the background loop and manual triggers."""
    global _scheduler
    if _scheduler is None:
        _scheduler = ReconciliationScheduler()
    return _scheduler
