"""
Table reconciliation job - Cron entry point.

Completes confirmed reservations whose window has elapsed and re-derives
every table's status. The API process runs the same job on a timer; this
entry point is for deployments that disable the in-process scheduler.

Usage:
    # Run via cron (e.g., every 5 minutes):
    */5 * * * * cd /app && python -m app.jobs.reconcile_tables

    # Or run directly:
    python -m app.jobs.reconcile_tables

    # Reconcile as of a specific local time:
    python -m app.jobs.reconcile_tables --at "2026-01-20 21:30"
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from typing import Optional

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("table-reconciliation")


async def run_reconciliation_job(
    now: Optional[datetime] = None,
    buffer_minutes: Optional[int] = None,
) -> dict:
    """
    Main entry point for table reconciliation.

    Can be called from cron, scheduler, or programmatically.

    Args:
        now: Local wall-clock time to reconcile against (default: now)
        buffer_minutes: Pre-arrival buffer override

    Returns:
        Dict with job results
    """
    from app.database import close_db
    from app.services.reconciliation import ReconciliationJob

    logger.info("Starting table reconciliation job...")

    try:
        job = ReconciliationJob(buffer_minutes=buffer_minutes)
        result = await job.run(now=now)
    finally:
        await close_db()

    return {
        "success": result.success,
        "reservations_completed": result.reservations_completed,
        "tables_checked": result.tables_checked,
        "tables_updated": result.tables_updated,
        "errors": result.errors,
        "duration_seconds": result.duration_seconds,
    }


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Complete elapsed reservations and reconcile table statuses"
    )
    parser.add_argument(
        "--at",
        type=str,
        default=None,
        help='Local time to reconcile against, "YYYY-MM-DD HH:MM" (default: now)',
    )
    parser.add_argument(
        "--buffer-minutes",
        type=int,
        default=None,
        help="Pre-arrival buffer in minutes (default: from settings)",
    )

    args = parser.parse_args()

    now = None
    if args.at:
        try:
            now = datetime.strptime(args.at, "%Y-%m-%d %H:%M")
        except ValueError:
            logger.error(f"Invalid --at value: {args.at}")
            sys.exit(1)

    result = asyncio.run(
        run_reconciliation_job(now=now, buffer_minutes=args.buffer_minutes)
    )

    # Log results
    if result["success"]:
        logger.info(
            f"Job completed successfully: "
            f"{result['reservations_completed']} reservations completed, "
            f"{result['tables_updated']}/{result['tables_checked']} tables updated, "
            f"{result['duration_seconds']:.1f}s"
        )
        sys.exit(0)
    else:
        logger.error(f"Job failed with errors: {result['errors']}")
        sys.exit(1)


if __name__ == "__main__":
    main()
