"""Request-layer dependencies: caller identity and authorization checks."""
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header

from app.exceptions import ForbiddenError
from app.models.reservation import Reservation
from app.services.identity_client import CurrentUser, IdentityClient


def get_identity_client() -> IdentityClient:
    return IdentityClient()


async def get_current_user(
    authorization: Optional[str] = Header(None),
    client: IdentityClient = Depends(get_identity_client),
) -> CurrentUser:
    """Resolve the Authorization header through the identity service."""
    return await client.resolve(authorization)


async def require_admin(
    user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    if not user.is_admin:
        raise ForbiddenError("Admin role required")
    return user


def ensure_owner_or_admin(user: CurrentUser, reservation: Reservation) -> None:
    """Only the owning user or an admin may act on a reservation."""
    if user.is_admin or reservation.user_id == user.user_id:
        return
    raise ForbiddenError("Not allowed to modify this reservation")
