"""Tests for the identity service client."""
from __future__ import annotations

import httpx
import pytest

from app.exceptions import UnauthorizedError
from app.services.identity_client import IdentityClient, extract_token


def _client(handler) -> IdentityClient:
    return IdentityClient(
        base_url="http://auth.test",
        timeout_seconds=1.0,
        transport=httpx.MockTransport(handler),
    )


class TestExtractToken:
    """Tests for reading the Authorization header."""

    def test_bearer_prefix(self):
        assert extract_token("Bearer abc123") == "abc123"

    def test_bare_token(self):
        assert extract_token("abc123") == "abc123"

    def test_prefix_is_case_insensitive(self):
        assert extract_token("bearer abc123") == "abc123"

    @pytest.mark.parametrize("header", [None, "", "   ", "Bearer "])
    def test_missing_token(self, header):
        with pytest.raises(UnauthorizedError):
            extract_token(header)


class TestResolve:
    """Tests for resolving a credential to a user."""

    async def test_resolves_user(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["authorization"] = request.headers["Authorization"]
            return httpx.Response(200, json={"user": {"id": 42, "role": "admin"}})

        user = await _client(handler).resolve("tok-1")

        assert user.user_id == "42"
        assert user.is_admin is True
        assert seen == {"path": "/auth/getUser", "authorization": "Bearer tok-1"}

    async def test_unknown_role_defaults_to_user(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"user": {"id": "u-7", "role": "superuser"}})

        user = await _client(handler).resolve("Bearer tok-1")

        assert user.role == "user"
        assert user.is_admin is False

    async def test_rejected_credential(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"message": "expired"})

        with pytest.raises(UnauthorizedError):
            await _client(handler).resolve("Bearer tok-1")

    async def test_missing_user_in_payload(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"user": None})

        with pytest.raises(UnauthorizedError):
            await _client(handler).resolve("Bearer tok-1")

    async def test_non_json_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>login</html>")

        with pytest.raises(UnauthorizedError):
            await _client(handler).resolve("Bearer tok-1")

    async def test_unreachable_service(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UnauthorizedError):
            await _client(handler).resolve("Bearer tok-1")

    async def test_missing_header_does_not_call_service(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("identity service should not be called")

        with pytest.raises(UnauthorizedError):
            await _client(handler).resolve(None)
