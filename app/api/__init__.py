# API routes
from app.api.tables import router as tables_router
from app.api.reservations import router as reservations_router
from app.api.admin import router as admin_router


__all__ = [
    "tables_router",
    "reservations_router",
    "admin_router",
]
