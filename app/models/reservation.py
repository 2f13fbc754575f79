from __future__ import annotations

from datetime import date, datetime, time
from typing import TYPE_CHECKING, Optional
import uuid

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text, Time
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.table import Table


class Reservation(Base):
    """A booking of one table for a time window on a calendar day."""

    __tablename__ = "reservations"
    __table_args__ = (
        Index("ix_reservations_table_date", "table_id", "reservation_date"),
        Index("ix_reservations_status_date", "status", "reservation_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    table_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("tables.id"), nullable=False
    )
    # Id issued by the external identity service
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    reservation_date: Mapped[date] = mapped_column(Date, nullable=False)
    reservation_time: Mapped[time] = mapped_column(Time, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    guest_count: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(String(20), default="pending")  # pending, confirmed, cancelled, completed
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    # Always loaded; reservations are rendered with their table
    table: Mapped["Table"] = relationship("Table", lazy="selectin")

    @property
    def start_minute(self) -> int:
        return self.reservation_time.hour * 60 + self.reservation_time.minute

    @property
    def end_minute(self) -> int:
        return self.start_minute + self.duration_minutes

    def __repr__(self) -> str:
        return (
            f"<Reservation(id={self.id}, table_id={self.table_id}, "
            f"{self.reservation_date} {self.reservation_time}, status={self.status})>"
        )
