"""Reservation lifecycle service.

States:
    pending   -> confirmed | cancelled
    confirmed -> cancelled | completed
    cancelled, completed: terminal

Every operation that can change which reservations hold a table re-derives
the table status afterwards. Creating a booking does not: a future-dated
pending reservation must not block walk-ins.

Authorization (owner or admin) is the caller's responsibility; this service
only enforces lifecycle legality, capacity and schedule conflicts.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.exceptions import (
    CapacityExceededError,
    InvalidTransitionError,
    NotFoundError,
    ScheduleConflictError,
    StorageError,
    ValidationError,
)
from app.models.reservation import Reservation
from app.models.table import Table
from app.services.availability import (
    RELEASED_STATUSES,
    AvailabilityOutcome,
    check_availability,
    validate_window,
)
from app.services.clock import local_now
from app.services.table_state import refresh_table_status

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[str, frozenset] = {
    "pending": frozenset({"confirmed", "cancelled"}),
    "confirmed": frozenset({"cancelled", "completed"}),
    "cancelled": frozenset(),
    "completed": frozenset(),
}

TERMINAL_STATUSES = frozenset(RELEASED_STATUSES)

# Fields whose change moves the booked window
SCHEDULE_FIELDS = ("table_id", "reservation_date", "reservation_time", "duration_minutes")
UPDATABLE_FIELDS = frozenset(SCHEDULE_FIELDS + ("guest_count", "notes"))

LIST_SCOPES = ("all", "mine", "ongoing")


class ReservationService:
    """Service for reservation lifecycle operations."""

    def __init__(
        self,
        session: AsyncSession,
        buffer_minutes: Optional[int] = None,
        default_duration_minutes: Optional[int] = None,
    ):
        settings = get_settings()
        self.session = session
        self.buffer_minutes = (
            buffer_minutes
            if buffer_minutes is not None
            else settings.pre_arrival_buffer_minutes
        )
        self.default_duration_minutes = (
            default_duration_minutes
            if default_duration_minutes is not None
            else settings.default_duration_minutes
        )

    # ------------------------------------------------------------------
    # Storage helpers
    # ------------------------------------------------------------------

    async def _execute(self, stmt):
        try:
            return await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StorageError(f"Storage read failed: {exc.__class__.__name__}") from exc

    async def _flush(self) -> None:
        try:
            await self.session.flush()
        except SQLAlchemyError as exc:
            raise StorageError(f"Storage write failed: {exc.__class__.__name__}") from exc

    async def _lock_table(self, table_id: UUID) -> Table:
        """Load a table row with a write lock, serializing bookings per table."""
        result = await self._execute(
            select(Table).where(Table.id == table_id).with_for_update()
        )
        table = result.scalar_one_or_none()
        if table is None:
            raise NotFoundError(f"Table {table_id} not found")
        return table

    async def _lock_tables(self, table_ids) -> Dict[UUID, Table]:
        """Lock several tables, always in id order."""
        locked: Dict[UUID, Table] = {}
        for table_id in sorted(set(table_ids), key=str):
            locked[table_id] = await self._lock_table(table_id)
        return locked

    async def get(self, reservation_id: UUID, lock: bool = False) -> Reservation:
        """Get a single reservation, raising NotFoundError if absent."""
        stmt = select(Reservation).where(Reservation.id == reservation_id)
        if lock:
            stmt = stmt.with_for_update()
        result = await self._execute(stmt)
        reservation = result.scalar_one_or_none()
        if reservation is None:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        return reservation

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    @staticmethod
    def _check_capacity(guest_count: int, table: Table) -> None:
        if guest_count > table.capacity:
            raise CapacityExceededError(guest_count, table.capacity)

    async def _ensure_available(
        self,
        table_id: UUID,
        reservation_date: date,
        reservation_time: time,
        duration_minutes: int,
        exclude_reservation_id: Optional[UUID] = None,
    ) -> None:
        result = await check_availability(
            self.session,
            table_id=table_id,
            reservation_date=reservation_date,
            start_time=reservation_time,
            duration_minutes=duration_minutes,
            exclude_reservation_id=exclude_reservation_id,
        )
        if result.available:
            return
        if result.outcome == AvailabilityOutcome.CONFLICT:
            raise ScheduleConflictError(result.message, conflicting_id=result.conflicting.id)
        if result.outcome == AvailabilityOutcome.INVALID_INPUT:
            raise ValidationError(result.message)
        raise StorageError(result.message)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create(
        self,
        user_id: str,
        table_id: UUID,
        reservation_date: date,
        reservation_time: time,
        guest_count: int,
        duration_minutes: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Reservation:
        """
        Create a pending reservation after capacity and overlap checks.

        Raises:
            ValidationError: Malformed input
            NotFoundError: Table does not exist
            CapacityExceededError: Party does not fit the table
            ScheduleConflictError: Window overlaps an active reservation
        """
        if duration_minutes is None:
            duration_minutes = self.default_duration_minutes

        problem = validate_window(table_id, reservation_date, reservation_time, duration_minutes)
        if problem:
            raise ValidationError(problem)
        if not user_id:
            raise ValidationError("user_id is required")
        if guest_count is None or guest_count < 1:
            raise ValidationError("guest_count must be at least 1")

        table = await self._lock_table(table_id)
        self._check_capacity(guest_count, table)
        await self._ensure_available(
            table_id, reservation_date, reservation_time, duration_minutes
        )

        reservation = Reservation(
            table_id=table.id,
            user_id=str(user_id),
            reservation_date=reservation_date,
            reservation_time=reservation_time,
            duration_minutes=duration_minutes,
            guest_count=guest_count,
            notes=notes,
            status="pending",
        )
        reservation.table = table
        self.session.add(reservation)
        await self._flush()

        logger.info(
            "Reservation %s created for table #%s on %s %s (%s min, %s guests)",
            reservation.id,
            table.table_number,
            reservation_date,
            reservation_time.strftime("%H:%M"),
            duration_minutes,
            guest_count,
        )
        return reservation

    async def _transition(
        self,
        reservation_id: UUID,
        target: str,
        now: Optional[datetime],
        source: str,
    ) -> Reservation:
        reservation = await self.get(reservation_id, lock=True)
        current = reservation.status
        if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
            raise InvalidTransitionError(current, target)

        table = await self._lock_table(reservation.table_id)
        reservation.status = target
        await self._flush()

        logger.info("Reservation %s: %s -> %s (source=%s)", reservation.id, current, target, source)

        await refresh_table_status(
            self.session,
            table,
            now or local_now(),
            source=source,
            buffer_minutes=self.buffer_minutes,
        )
        return reservation

    async def confirm(
        self,
        reservation_id: UUID,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """pending -> confirmed, then re-derive the table status."""
        return await self._transition(reservation_id, "confirmed", now, source="reservation")

    async def cancel(
        self,
        reservation_id: UUID,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """pending|confirmed -> cancelled, then re-derive the table status."""
        return await self._transition(reservation_id, "cancelled", now, source="reservation")

    async def complete(
        self,
        reservation_id: UUID,
        now: Optional[datetime] = None,
        source: str = "reservation",
    ) -> Reservation:
        """confirmed -> completed, then re-derive the table status."""
        return await self._transition(reservation_id, "completed", now, source=source)

    async def set_status(
        self,
        reservation_id: UUID,
        status: str,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """Dispatch a requested status to the matching transition."""
        status = getattr(status, "value", status)
        actions = {
            "confirmed": self.confirm,
            "cancelled": self.cancel,
            "completed": self.complete,
        }
        action = actions.get(status)
        if action is None:
            reservation = await self.get(reservation_id)
            raise InvalidTransitionError(reservation.status, str(status))
        return await action(reservation_id, now=now)

    async def update(
        self,
        reservation_id: UUID,
        changes: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> Reservation:
        """
        Apply field changes to a non-terminal reservation.

        Only a change of table/date/time/duration re-runs the overlap check
        (excluding the reservation itself). A guest_count or table change
        re-runs the capacity check against the prospective table.

        Raises:
            ValidationError: Unknown field or malformed value
            InvalidTransitionError: Reservation is cancelled or completed
            NotFoundError: Reservation or new table does not exist
            CapacityExceededError: Party does not fit the prospective table
            ScheduleConflictError: New window overlaps an active reservation
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        # None means "leave unchanged" except for notes, where it clears the value
        proposed = {
            field: value
            for field, value in changes.items()
            if value is not None or field == "notes"
        }
        if "duration_minutes" in proposed and proposed["duration_minutes"] <= 0:
            raise ValidationError("duration_minutes must be greater than 0")
        if "guest_count" in proposed and proposed["guest_count"] < 1:
            raise ValidationError("guest_count must be at least 1")

        reservation = await self.get(reservation_id, lock=True)
        if reservation.status in TERMINAL_STATUSES:
            raise InvalidTransitionError(
                reservation.status,
                reservation.status,
                message=f"Reservation is already {reservation.status} and cannot be updated",
            )

        changed = {
            field: value
            for field, value in proposed.items()
            if getattr(reservation, field) != value
        }
        schedule_changed = any(field in changed for field in SCHEDULE_FIELDS)
        table_changed = "table_id" in changed
        guests_changed = "guest_count" in changed

        old_table_id = reservation.table_id
        new_table_id = changed.get("table_id", old_table_id)

        locked: Dict[UUID, Table] = {}
        if schedule_changed or guests_changed:
            locked = await self._lock_tables((old_table_id, new_table_id))
        target_table = locked.get(new_table_id)

        if table_changed or guests_changed:
            self._check_capacity(
                changed.get("guest_count", reservation.guest_count), target_table
            )

        if schedule_changed:
            await self._ensure_available(
                new_table_id,
                changed.get("reservation_date", reservation.reservation_date),
                changed.get("reservation_time", reservation.reservation_time),
                changed.get("duration_minutes", reservation.duration_minutes),
                exclude_reservation_id=reservation.id,
            )

        for field, value in changed.items():
            setattr(reservation, field, value)
        if table_changed:
            reservation.table = target_table
        await self._flush()

        if changed:
            logger.info(
                "Reservation %s updated: %s", reservation.id, ", ".join(sorted(changed))
            )

        if schedule_changed and reservation.status == "confirmed":
            now = now or local_now()
            for table_id in dict.fromkeys((old_table_id, new_table_id)):
                await refresh_table_status(
                    self.session,
                    locked[table_id],
                    now,
                    source="reservation",
                    buffer_minutes=self.buffer_minutes,
                )

        return reservation

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_reservations(
        self,
        scope: str = "all",
        user_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[Reservation]:
        """
        List reservations ordered by date then time.

        Scopes:
        - all: every reservation
        - mine: reservations owned by ``user_id``
        - ongoing: today's active reservations whose window contains now
        """
        scope = getattr(scope, "value", scope)
        if scope not in LIST_SCOPES:
            raise ValidationError(f"Unknown scope '{scope}'")

        stmt = select(Reservation).order_by(
            Reservation.reservation_date, Reservation.reservation_time
        )

        if scope == "mine":
            if not user_id:
                raise ValidationError("user_id is required for scope 'mine'")
            stmt = stmt.where(Reservation.user_id == str(user_id))
        elif scope == "ongoing":
            now = now or local_now()
            stmt = stmt.where(Reservation.reservation_date == now.date()).where(
                Reservation.status.notin_(RELEASED_STATUSES)
            )

        result = await self._execute(stmt)
        reservations = list(result.scalars().all())

        if scope == "ongoing":
            now_minute = now.hour * 60 + now.minute
            reservations = [
                r for r in reservations if r.start_minute <= now_minute < r.end_minute
            ]
        return reservations
