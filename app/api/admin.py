"""
Admin endpoints for operational tasks.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import require_admin
from app.services.identity_client import CurrentUser
from app.services.reconciliation import (
    ReconciliationScheduler,
    get_reconciliation_scheduler,
)

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


@router.post("/reconcile")
async def trigger_reconciliation(
    admin: CurrentUser = Depends(require_admin),
    scheduler: ReconciliationScheduler = Depends(get_reconciliation_scheduler),
) -> dict:
    """
    Run the reconciliation pass now.

    Skipped (not queued) when a pass is already in progress.
    """
    result = await scheduler.run_once()
    if result is None:
        return {"status": "skipped", "reason": "Reconciliation already in progress"}

    return {
        "status": "completed" if result.success else "completed_with_errors",
        "reservations_completed": result.reservations_completed,
        "tables_checked": result.tables_checked,
        "tables_updated": result.tables_updated,
        "errors": result.errors,
        "duration_seconds": result.duration_seconds,
    }
