from __future__ import annotations

from datetime import date, datetime, time
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _whole_minute(value: Optional[time]) -> Optional[time]:
    if value is not None and (value.second or value.microsecond):
        raise ValueError("reservation_time must be a whole minute")
    return value


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class ReservationScope(str, Enum):
    ALL = "all"
    MINE = "mine"
    ONGOING = "ongoing"


class AvailabilityRequest(BaseModel):
    """
    Schema for an availability check.

    Fields are optional on purpose: missing values are reported by the checker
    as an invalid-input outcome rather than a request validation failure.
    """

    table_id: Optional[UUID] = None
    reservation_date: Optional[date] = None
    reservation_time: Optional[time] = None
    duration_minutes: Optional[int] = None
    reservation_id: Optional[UUID] = None


class AvailabilityResponse(BaseModel):
    """Result of an availability check."""

    is_available: bool
    outcome: str
    message: str
    conflicting_reservation_id: Optional[UUID] = None


class ReservationCreate(BaseModel):
    """Schema for creating a reservation."""

    table_id: UUID
    reservation_date: date
    reservation_time: time
    duration_minutes: Optional[int] = Field(None, gt=0, le=24 * 60)
    guest_count: int = Field(..., ge=1)
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("reservation_time")
    @classmethod
    def reservation_time_whole_minute(cls, v: Optional[time]) -> Optional[time]:
        """Bookings start on a whole minute."""
        return _whole_minute(v)


class ReservationUpdate(BaseModel):
    """Schema for updating a reservation (only provided fields change)."""

    table_id: Optional[UUID] = None
    reservation_date: Optional[date] = None
    reservation_time: Optional[time] = None
    duration_minutes: Optional[int] = Field(None, gt=0, le=24 * 60)
    guest_count: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("reservation_time")
    @classmethod
    def reservation_time_whole_minute(cls, v: Optional[time]) -> Optional[time]:
        """Bookings start on a whole minute."""
        return _whole_minute(v)


class ReservationStatusUpdate(BaseModel):
    """Schema for a lifecycle transition request."""

    status: ReservationStatus


class TableSummary(BaseModel):
    """Table info joined onto a reservation for display."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    table_number: int
    capacity: int


class ReservationRead(BaseModel):
    """Schema for reading a reservation."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    table_id: UUID
    user_id: str
    reservation_date: date
    reservation_time: time
    duration_minutes: int
    guest_count: int
    status: str
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime
    table: Optional[TableSummary] = None


class ReservationStatusResponse(BaseModel):
    """Reservation after a transition, with the table status it produced."""

    reservation: ReservationRead
    table_status: Optional[str] = None
