# tests/test_session.py — Caller identity, logout and token revocation
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from auth import AuthService
from repositories import TokenRepository
from tests.conftest import get_auth_headers
from usecases.session import LogoutRequest, LogoutUser


@pytest.mark.asyncio
class TestCurrentUser:
    async def test_me(self, client: AsyncClient, owner):
        res = await client.get("/api/v1/auth/me", headers=get_auth_headers(owner))
        assert res.status_code == 200
        data = res.json()
        assert data["id"] == owner.id
        assert data["username"] == "owner"
        assert data["jti"]

    async def test_missing_token(self, client: AsyncClient):
        res = await client.get("/api/v1/auth/me")
        assert res.status_code in (401, 403)

    async def test_garbage_token(self, client: AsyncClient):
        res = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert res.status_code == 401

    async def test_expired_token(self, client: AsyncClient, owner):
        token = AuthService.create_access_token({"sub": owner.id}, expires_delta=timedelta(seconds=-5))
        res = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    async def test_inactive_user(self, client: AsyncClient, inactive_user):
        res = await client.get("/api/v1/auth/me", headers=get_auth_headers(inactive_user))
        assert res.status_code == 401


@pytest.mark.asyncio
class TestLogout:
    async def test_logout_revokes_token(self, client: AsyncClient, owner):
        headers = get_auth_headers(owner)
        res = await client.post("/api/v1/auth/logout", headers=headers)
        assert res.status_code == 200
        assert res.json() == {"status": "logged_out"}

        res = await client.get("/api/v1/auth/me", headers=headers)
        assert res.status_code == 401

    async def test_other_tokens_survive(self, client: AsyncClient, owner):
        first, second = get_auth_headers(owner), get_auth_headers(owner)
        await client.post("/api/v1/auth/logout", headers=first)
        res = await client.get("/api/v1/auth/me", headers=second)
        assert res.status_code == 200

    async def test_revocation_is_idempotent(self, db_session, owner):
        expires = datetime.now(timezone.utc) + timedelta(minutes=5)
        request = LogoutRequest(user_id=owner.id, jti="jti-1", expires_at=expires)
        assert await LogoutUser(db_session).execute(request) is True
        assert await LogoutUser(db_session).execute(request) is True
        assert await TokenRepository(db_session).is_revoked("jti-1")

    async def test_token_without_id_is_a_no_op(self, db_session, owner):
        expires = datetime.now(timezone.utc) + timedelta(minutes=5)
        assert await LogoutUser(db_session).execute(LogoutRequest(user_id=owner.id, expires_at=expires)) is True

    async def test_storage_failure_still_logs_out(self, db_session, owner, monkeypatch):
        async def broken_revoke(self, jti, user_id, expires_at):
            raise OperationalError("INSERT INTO revoked_tokens", {}, Exception("disk I/O error"))

        monkeypatch.setattr(TokenRepository, "revoke", broken_revoke)
        expires = datetime.now(timezone.utc) + timedelta(minutes=5)
        result = await LogoutUser(db_session).execute(LogoutRequest(
            user_id=owner.id, jti="jti-2", expires_at=expires,
        ))
        assert result is True
        assert not await TokenRepository(db_session).is_revoked("jti-2")
