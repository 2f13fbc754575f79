from app.models.table import Table
from app.models.reservation import Reservation
from app.models.metrics import TableStateLog

__all__ = [
    "Table",
    "Reservation",
    "TableStateLog",
]
