from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.errors import register_exception_handlers
from app.config import get_settings
from app.database import close_db, init_db
from app.services.reconciliation import get_reconciliation_scheduler

# Import all models to register them with Base BEFORE init_db
# This ensures create_all() sees all tables
from app.models import (  # noqa: F401
    Reservation,
    Table,
    TableStateLog,
)

settings = get_settings()
LOGGER = logging.getLogger("table-reservations")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown events."""
    # Startup - create tables if they don't exist
    try:
        await init_db()
        LOGGER.info("Database initialized")
    except Exception as e:
        LOGGER.error("Database initialization failed: %s", e)
        raise

    scheduler = get_reconciliation_scheduler()
    if settings.reconcile_enabled:
        await scheduler.start()
    else:
        LOGGER.info("Reconciliation scheduler disabled")

    yield

    # Shutdown
    if settings.reconcile_enabled:
        await scheduler.stop()

    await close_db()


app = FastAPI(
    title="Table Reservation Service",
    description="Reservations, table availability and table status for a single restaurant",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS (needed for browser preflight requests)
if settings.is_development:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

register_exception_handlers(app)


@app.get("/healthz")
async def health_check() -> dict:
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "table-reservations",
        "reconciler_running": get_reconciliation_scheduler().is_running,
    }


@app.get("/")
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": "Table Reservation Service",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/healthz",
    }


# Include API routers
from app.api import (
    admin_router,
    reservations_router,
    tables_router,
)

app.include_router(tables_router)
app.include_router(reservations_router)
app.include_router(admin_router)
