"""Derive a table's status from its confirmed reservations.

Priority, first match wins:
1. A confirmed reservation is in progress today          -> occupied
2. The next confirmed reservation today starts within
   the pre-arrival buffer                                 -> occupied
   ... or later than the buffer                           -> reserved
3. Nothing current or upcoming today                      -> available

The function is pure: it only looks at ``now`` and the reservations it is
given, and ignores entries that are not confirmed or not on today's date.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from app.models.reservation import Reservation

AVAILABLE = "available"
RESERVED = "reserved"
OCCUPIED = "occupied"

TABLE_STATUSES = (AVAILABLE, RESERVED, OCCUPIED)

DEFAULT_PRE_ARRIVAL_BUFFER_MINUTES = 60


@dataclass(frozen=True)
class StatusDecision:
    """Derived status plus the reservation (if any) that caused it."""

    status: str
    reservation_id: Optional[UUID] = None
    reason: str = ""


def _clock(minute: int) -> str:
    hours, minutes = divmod(minute % (24 * 60), 60)
    return f"{hours:02d}:{minutes:02d}"


def derive_table_status(
    reservations: Iterable[Reservation],
    now: datetime,
    buffer_minutes: int = DEFAULT_PRE_ARRIVAL_BUFFER_MINUTES,
) -> StatusDecision:
    """Compute the status a table should have at ``now``."""
    today = now.date()
    now_minute = now.hour * 60 + now.minute

    todays = sorted(
        (
            r
            for r in reservations
            if r.status == "confirmed" and r.reservation_date == today
        ),
        key=lambda r: (r.start_minute, str(r.id)),
    )

    for reservation in todays:
        if reservation.start_minute <= now_minute < reservation.end_minute:
            return StatusDecision(
                status=OCCUPIED,
                reservation_id=reservation.id,
                reason=f"Reservation in progress until {_clock(reservation.end_minute)}",
            )

    upcoming = next((r for r in todays if r.start_minute > now_minute), None)
    if upcoming is not None:
        gap = upcoming.start_minute - now_minute
        if gap <= buffer_minutes:
            return StatusDecision(
                status=OCCUPIED,
                reservation_id=upcoming.id,
                reason=f"Upcoming reservation at {_clock(upcoming.start_minute)} in {gap} minutes",
            )
        return StatusDecision(
            status=RESERVED,
            reservation_id=upcoming.id,
            reason=f"Next reservation at {_clock(upcoming.start_minute)} in {gap} minutes",
        )

    return StatusDecision(
        status=AVAILABLE,
        reason="No active or upcoming reservations today",
    )
