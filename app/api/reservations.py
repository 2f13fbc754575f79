"""
REST API endpoints for reservations.
"""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import ensure_owner_or_admin, get_current_user
from app.database import get_session
from app.exceptions import ForbiddenError
from app.schemas.reservation import (
    AvailabilityRequest,
    AvailabilityResponse,
    ReservationCreate,
    ReservationRead,
    ReservationScope,
    ReservationStatusResponse,
    ReservationStatusUpdate,
    ReservationUpdate,
)
from app.services.availability import check_availability
from app.services.identity_client import CurrentUser
from app.services.reservation_service import ReservationService

router = APIRouter(prefix="/api/v1", tags=["reservations"])


def _status_response(reservation) -> ReservationStatusResponse:
    return ReservationStatusResponse(
        reservation=ReservationRead.model_validate(reservation),
        table_status=reservation.table.status if reservation.table else None,
    )


@router.post("/reservations/check-availability", response_model=AvailabilityResponse)
async def check_reservation_availability(
    data: AvailabilityRequest,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> AvailabilityResponse:
    """
    Check whether a table is free for a time window.

    Always answers 200; ``outcome`` tells a real conflict apart from
    incomplete input or a storage failure.
    """
    result = await check_availability(
        session,
        table_id=data.table_id,
        reservation_date=data.reservation_date,
        start_time=data.reservation_time,
        duration_minutes=data.duration_minutes,
        exclude_reservation_id=data.reservation_id,
    )
    return AvailabilityResponse(
        is_available=result.available,
        outcome=result.outcome.value,
        message=result.message,
        conflicting_reservation_id=result.conflicting.id if result.conflicting else None,
    )


@router.post("/reservations", response_model=ReservationRead, status_code=201)
async def create_reservation(
    data: ReservationCreate,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ReservationRead:
    """Create a pending reservation for the calling user."""
    service = ReservationService(session)
    reservation = await service.create(
        user_id=user.user_id,
        table_id=data.table_id,
        reservation_date=data.reservation_date,
        reservation_time=data.reservation_time,
        guest_count=data.guest_count,
        duration_minutes=data.duration_minutes,
        notes=data.notes,
    )
    return ReservationRead.model_validate(reservation)


@router.get("/reservations", response_model=List[ReservationRead])
async def list_reservations(
    scope: Optional[ReservationScope] = Query(
        None, description="all (admin), mine, ongoing. Defaults to all for admins, mine otherwise"
    ),
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> List[ReservationRead]:
    """List reservations ordered by date and time."""
    if scope is None:
        scope = ReservationScope.ALL if user.is_admin else ReservationScope.MINE
    if scope == ReservationScope.ALL and not user.is_admin:
        raise ForbiddenError("Admin role required to list all reservations")

    service = ReservationService(session)
    reservations = await service.list_reservations(scope=scope.value, user_id=user.user_id)
    return [ReservationRead.model_validate(r) for r in reservations]


@router.get("/reservations/{reservation_id}", response_model=ReservationRead)
async def get_reservation(
    reservation_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ReservationRead:
    """Get one reservation (owner or admin)."""
    service = ReservationService(session)
    reservation = await service.get(reservation_id)
    ensure_owner_or_admin(user, reservation)
    return ReservationRead.model_validate(reservation)


@router.put("/reservations/{reservation_id}", response_model=ReservationRead)
async def update_reservation(
    reservation_id: UUID,
    data: ReservationUpdate,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ReservationRead:
    """Update table, date, time, duration, guest count or notes."""
    service = ReservationService(session)
    ensure_owner_or_admin(user, await service.get(reservation_id))

    reservation = await service.update(
        reservation_id, data.model_dump(exclude_unset=True)
    )
    return ReservationRead.model_validate(reservation)


@router.patch("/reservations/{reservation_id}/status", response_model=ReservationStatusResponse)
async def set_reservation_status(
    reservation_id: UUID,
    data: ReservationStatusUpdate,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ReservationStatusResponse:
    """
    Move a reservation through its lifecycle.

    The table status is re-derived and returned alongside the reservation.
    """
    service = ReservationService(session)
    ensure_owner_or_admin(user, await service.get(reservation_id))

    reservation = await service.set_status(reservation_id, data.status.value)
    return _status_response(reservation)


@router.delete("/reservations/{reservation_id}", response_model=ReservationStatusResponse)
async def cancel_reservation(
    reservation_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ReservationStatusResponse:
    """Cancel a reservation. The record is kept with status 'cancelled'."""
    service = ReservationService(session)
    ensure_owner_or_admin(user, await service.get(reservation_id))

    reservation = await service.cancel(reservation_id)
    return _status_response(reservation)
