import pytest
from httpx import AsyncClient
from jose import jwt

from app.core.config import settings


def _jti(headers: dict) -> str:
    token = headers["Authorization"].split(" ", 1)[1]
    claims = jwt.decode(token, settings.JWT_SECRET_KEY.get_secret_value(), algorithms=[settings.JWT_ALGORITHM])
    return claims["jti"]


# ─────────────────────────────────────────────────────────────
# POST /api/logout  +  GET /api/user
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_current_user(async_client: AsyncClient, user_headers, normal_user):
    resp = await async_client.get("/api/user", headers=user_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == normal_user.id
    assert body["role"] == "user"
    assert "hashed_password" not in body and "password" not in body


@pytest.mark.anyio
async def test_current_user_requires_token(async_client: AsyncClient):
    resp = await async_client.get("/api/user")
    assert resp.status_code == 401
    assert resp.json() == {"status": "error", "message": "Unauthenticated."}


@pytest.mark.anyio
async def test_logout_revokes_token(async_client: AsyncClient, user_headers, redis_client):
    jti = _jti(user_headers)
    # the validity lane is written at issue time; reinstate it after the flush
    await redis_client.setex(f"access:jti:{jti}", 3600, "valid")

    resp = await async_client.post("/api/logout", headers=user_headers)
    assert resp.status_code == 204
    assert resp.content == b""

    assert await redis_client.get(f"revoked:jti:{jti}") == "revoked"
    assert await redis_client.get(f"access:jti:{jti}") is None
    assert 0 < await redis_client.ttl(f"revoked:jti:{jti}") <= settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    again = await async_client.get("/api/user", headers=user_headers)
    assert again.status_code == 401


@pytest.mark.anyio
async def test_logout_without_token(async_client: AsyncClient):
    resp = await async_client.post("/api/logout")
    assert resp.status_code == 401
    assert resp.json()["message"] == "Unauthenticated."


@pytest.mark.anyio
async def test_garbage_token_rejected(async_client: AsyncClient):
    resp = await async_client.post("/api/logout", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
