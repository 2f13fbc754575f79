from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class TableStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    OCCUPIED = "occupied"


class TableCreate(BaseModel):
    """Schema for creating a table."""

    table_number: int = Field(..., ge=1)
    capacity: int = Field(..., ge=1, le=50)


class TableUpdate(BaseModel):
    """Schema for updating a table."""

    table_number: Optional[int] = Field(None, ge=1)
    capacity: Optional[int] = Field(None, ge=1, le=50)


class TableStatusUpdate(BaseModel):
    """Schema for an admin status override."""

    status: TableStatus
    reason: Optional[str] = Field(None, max_length=500)


class TableRead(BaseModel):
    """Schema for reading a table."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    table_number: int
    capacity: int
    status: str
    status_updated_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


class TableStateLogRead(BaseModel):
    """One entry of a table's status history."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    previous_state: Optional[str]
    new_state: Optional[str]
    source: Optional[str]
    reservation_id: Optional[UUID]
    reason: Optional[str]
    created_at: datetime
