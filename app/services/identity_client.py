"""
Identity Service Client

Resolves a bearer credential to the calling user through the external auth
service (``GET {AUTH_SERVICE_URL}/auth/getUser``). Any failure is reported as
UnauthorizedError.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from app.config import get_settings
from app.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)

USER_PATH = "/auth/getUser"
ROLES = ("user", "admin")


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller."""

    user_id: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def extract_token(authorization: Optional[str]) -> str:
    """Accept both ``Bearer <token>`` and a bare token."""
    if not authorization or not authorization.strip():
        raise UnauthorizedError("Authorization header missing")
    parts = authorization.split(None, 1)
    if parts[0].lower() == "bearer":
        token = parts[1].strip() if len(parts) > 1 else ""
    else:
        token = authorization.strip()
    if not token:
        raise UnauthorizedError("Token missing from Authorization header")
    return token


class IdentityClient:
    """Async client for the external identity service."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.auth_service_url).rstrip("/")
        self.timeout_seconds = timeout_seconds or settings.auth_timeout_seconds
        self._transport = transport

    async def resolve(self, authorization: Optional[str]) -> CurrentUser:
        """
        Resolve an Authorization header to the calling user.

        Raises:
            UnauthorizedError: Missing credential, rejected credential,
                unreachable identity service or malformed response
        """
        token = extract_token(authorization)

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(
                    USER_PATH, headers={"Authorization": f"Bearer {token}"}
                )
        except httpx.HTTPError as e:
            logger.warning("Identity service request failed: %s", e)
            raise UnauthorizedError("Could not verify user") from e

        if response.status_code != 200:
            logger.info("Identity service rejected credential (HTTP %s)", response.status_code)
            raise UnauthorizedError("Invalid or expired credential")

        try:
            payload = response.json()
        except ValueError as e:
            raise UnauthorizedError("Identity service returned an invalid response") from e

        user = payload.get("user") if isinstance(payload, dict) else None
        if not isinstance(user, dict) or user.get("id") is None:
            raise UnauthorizedError("User not valid")

        role = user.get("role") if user.get("role") in ROLES else "user"
        return CurrentUser(user_id=str(user["id"]), role=role)
