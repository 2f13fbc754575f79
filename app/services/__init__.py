# Business logic services
from app.services.table_service import TableService
from app.services.reservation_service import ReservationService
from app.services.reconciliation import ReconciliationJob, ReconciliationScheduler

__all__ = [
    "TableService",
    "ReservationService",
    "ReconciliationJob",
    "ReconciliationScheduler",
]
