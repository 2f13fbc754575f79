from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional
import uuid

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.table import Table


class TableStateLog(Base):
    """Table status history (audit trail of every actual transition)."""

    __tablename__ = "table_state_log"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    table_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("tables.id"), nullable=False, index=True
    )

    previous_state: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    new_state: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    source: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # 'reservation', 'reconciler', 'admin'

    # Booking that drove the new state, if any
    reservation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)

    # Relationships
    table: Mapped["Table"] = relationship("Table", back_populates="state_logs")

    def __repr__(self) -> str:
        return f"<TableStateLog(table_id={self.table_id}, {self.previous_state} -> {self.new_state})>"
