"""Reservation time-window availability.

Intervals are half-open ``[start, start + duration)`` measured in minutes
since midnight, so a booking that ends at 19:00 and one that starts at 19:00
do not conflict. Start times are whole minutes and a window never runs past
midnight, which keeps minute arithmetic exact within a single day.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, time
from enum import Enum
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.reservation import Reservation

logger = logging.getLogger(__name__)

# Reservations in these states no longer hold their time window
RELEASED_STATUSES = ("cancelled", "completed")

MINUTES_PER_DAY = 24 * 60


class AvailabilityOutcome(str, Enum):
    AVAILABLE = "available"
    CONFLICT = "conflict"
    INVALID_INPUT = "invalid_input"
    STORAGE_ERROR = "storage_error"


@dataclass
class AvailabilityResult:
    """Outcome of an availability check."""

    available: bool
    outcome: AvailabilityOutcome
    message: str
    conflicting: Optional[Reservation] = None


def minutes_since_midnight(value: time) -> int:
    return value.hour * 60 + value.minute


def intervals_overlap(
    start_a: int,
    duration_a: int,
    start_b: int,
    duration_b: int,
) -> bool:
    """True when two half-open minute intervals share at least one instant."""
    return start_a < start_b + duration_b and start_b < start_a + duration_a


def find_conflict(
    start_minute: int,
    duration_minutes: int,
    existing: Iterable[Reservation],
) -> Optional[Reservation]:
    """Return the earliest reservation overlapping the candidate window, if any."""
    conflicts = [
        reservation
        for reservation in existing
        if intervals_overlap(
            start_minute,
            duration_minutes,
            reservation.start_minute,
            reservation.duration_minutes,
        )
    ]
    return min(conflicts, key=lambda r: (r.start_minute, str(r.id)), default=None)


def validate_window(
    table_id: Optional[UUID],
    reservation_date: Optional[date],
    start_time: Optional[time],
    duration_minutes: Optional[int],
) -> Optional[str]:
    """Return a description of what is wrong with the window, or None."""
    missing = [
        name
        for name, value in (
            ("table_id", table_id),
            ("reservation_date", reservation_date),
            ("reservation_time", start_time),
            ("duration_minutes", duration_minutes),
        )
        if value is None
    ]
    if missing:
        return f"Incomplete reservation data: {', '.join(missing)} required"
    if duration_minutes <= 0:
        return "duration_minutes must be greater than 0"
    if start_time.second or start_time.microsecond:
        return "reservation_time must be a whole minute"
    if minutes_since_midnight(start_time) + duration_minutes > MINUTES_PER_DAY:
        return "Reservation must end by midnight"
    return None


async def get_active_reservations(
    session: AsyncSession,
    table_id: UUID,
    reservation_date: date,
    exclude_reservation_id: Optional[UUID] = None,
) -> List[Reservation]:
    """Reservations still holding a window on this table and day, earliest first."""
    stmt = (
        select(Reservation)
        .where(Reservation.table_id == table_id)
        .where(Reservation.reservation_date == reservation_date)
        .where(Reservation.status.notin_(RELEASED_STATUSES))
        .order_by(Reservation.reservation_time)
    )
    if exclude_reservation_id is not None:
        stmt = stmt.where(Reservation.id != exclude_reservation_id)

    result = await session.execute(stmt)
    return list(result.scalars().all())


async def check_availability(
    session: AsyncSession,
    table_id: Optional[UUID],
    reservation_date: Optional[date],
    start_time: Optional[time],
    duration_minutes: Optional[int],
    exclude_reservation_id: Optional[UUID] = None,
) -> AvailabilityResult:
    """
    Check whether a table is free for the given window.

    Args:
        session: Database session
        table_id: Table to book
        reservation_date: Calendar day of the booking
        start_time: Wall-clock start time
        duration_minutes: Length of the booking
        exclude_reservation_id: Reservation to ignore (when re-checking an update)

    Returns:
        AvailabilityResult. Bad input and storage failures are reported with
        their own outcome so callers can tell them apart from a real conflict.
    """
    problem = validate_window(table_id, reservation_date, start_time, duration_minutes)
    if problem:
        return AvailabilityResult(
            available=False,
            outcome=AvailabilityOutcome.INVALID_INPUT,
            message=problem,
        )

    try:
        existing = await get_active_reservations(
            session,
            table_id=table_id,
            reservation_date=reservation_date,
            exclude_reservation_id=exclude_reservation_id,
        )
    except SQLAlchemyError as exc:
        logger.exception("Availability lookup failed for table %s on %s", table_id, reservation_date)
        return AvailabilityResult(
            available=False,
            outcome=AvailabilityOutcome.STORAGE_ERROR,
            message=f"Could not check availability: {exc.__class__.__name__}",
        )

    conflict = find_conflict(
        minutes_since_midnight(start_time), duration_minutes, existing
    )
    if conflict is not None:
        return AvailabilityResult(
            available=False,
            outcome=AvailabilityOutcome.CONFLICT,
            message=(
                f"Requested time overlaps reservation {conflict.id} "
                f"({conflict.reservation_time.strftime('%H:%M')}, "
                f"{conflict.duration_minutes} min)"
            ),
            conflicting=conflict,
        )

    return AvailabilityResult(
        available=True,
        outcome=AvailabilityOutcome.AVAILABLE,
        message="Requested time is available",
    )
