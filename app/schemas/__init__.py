from app.schemas.table import (
    TableCreate,
    TableRead,
    TableStateLogRead,
    TableStatus,
    TableStatusUpdate,
    TableUpdate,
)
from app.schemas.reservation import (
    AvailabilityRequest,
    AvailabilityResponse,
    ReservationCreate,
    ReservationRead,
    ReservationScope,
    ReservationStatus,
    ReservationStatusResponse,
    ReservationStatusUpdate,
    ReservationUpdate,
    TableSummary,
)

__all__ = [
    "TableCreate",
    "TableRead",
    "TableStateLogRead",
    "TableStatus",
    "TableStatusUpdate",
    "TableUpdate",
    "AvailabilityRequest",
    "AvailabilityResponse",
    "ReservationCreate",
    "ReservationRead",
    "ReservationScope",
    "ReservationStatus",
    "ReservationStatusResponse",
    "ReservationStatusUpdate",
    "ReservationUpdate",
    "TableSummary",
]
