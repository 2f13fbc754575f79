"""Error taxonomy for reservation and table operations.

Every error carries a stable ``code`` and the HTTP status the request layer
renders it with, so handlers never need to inspect messages.
"""
from __future__ import annotations

from typing import Optional
from uuid import UUID


class ReservationError(Exception):
    """Base exception for reservation/table domain errors."""

    code = "reservation_error"
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(ReservationError):
    """Malformed or missing input. Raised before storage is touched."""

    code = "validation_error"
    status_code = 400


class NotFoundError(ReservationError):
    """Reservation or table does not exist."""

    code = "not_found"
    status_code = 404


class UnauthorizedError(ReservationError):
    """Credential missing or rejected by the identity service."""

    code = "unauthorized"
    status_code = 401


class ForbiddenError(ReservationError):
    """Caller is neither the owner nor an admin."""

    code = "forbidden"
    status_code = 403


class CapacityExceededError(ReservationError):
    """Guest count is larger than the table capacity."""

    code = "capacity_exceeded"
    status_code = 400

    def __init__(self, guest_count: int, capacity: int):
        self.guest_count = guest_count
        self.capacity = capacity
        super().__init__(
            f"Table capacity is {capacity} guests, requested {guest_count}"
        )


class ScheduleConflictError(ReservationError):
    """The requested window overlaps an active reservation on the same table."""

    code = "schedule_conflict"
    status_code = 409

    def __init__(self, message: str, conflicting_id: Optional[UUID] = None):
        # Id only; the session that loaded the row is closed before rendering
        self.conflicting_id = conflicting_id
        super().__init__(message)


class InvalidTransitionError(ReservationError):
    """Lifecycle transition not allowed from the current status."""

    code = "invalid_transition"
    status_code = 409

    def __init__(self, current: str, target: str, message: Optional[str] = None):
        self.current = current
        self.target = target
        super().__init__(
            message or f"Cannot move reservation from '{current}' to '{target}'"
        )


class StorageError(ReservationError):
    """Underlying persistence failure."""

    code = "storage_error"
    status_code = 503
