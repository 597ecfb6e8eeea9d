import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.core.security import verify_password
from app.db.models.audit_log import AuditLog
from app.db.models.user import User


def _payload(**overrides) -> dict:
    body = {"name": "Ada Lovelace", "email": "ada@example.com", "password": "secret123", "role": "user"}
    body.update(overrides)
    return body


# ─────────────────────────────────────────────────────────────
# POST /api/register
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_register_returns_token_and_hashes_password(async_client: AsyncClient, db_session):
    resp = await async_client.post("/api/register", json=_payload(email="Ada@Example.com"))
    assert resp.status_code == 201, resp.text
    assert set(resp.json()) == {"token"}
    assert resp.headers["cache-control"].startswith("no-store")

    user = (await db_session.execute(select(User).where(User.email == "ada@example.com"))).scalar_one()
    assert user.role == "user"
    assert user.hashed_password != "secret123"
    assert verify_password("secret123", user.hashed_password)

    audit = (await db_session.execute(select(AuditLog).where(AuditLog.action == "REGISTER"))).scalars().all()
    assert len(audit) == 1


@pytest.mark.anyio
async def test_register_token_authenticates(async_client: AsyncClient):
    resp = await async_client.post("/api/register", json=_payload(role="admin"))
    token = resp.json()["token"]

    me = await async_client.get("/api/user", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "ada@example.com"
    assert me.json()["role"] == "admin"


@pytest.mark.anyio
async def test_register_duplicate_email(async_client: AsyncClient, create_test_user):
    await create_test_user(email="taken@example.com")

    resp = await async_client.post("/api/register", json=_payload(email="taken@example.com"))
    assert resp.status_code == 422
    body = resp.json()
    assert body["status"] == "error"
    assert body["message"] == "Invalid input data"
    assert body["errors"]["email"] == ["The email has already been taken."]


@pytest.mark.anyio
async def test_register_validation_messages(async_client: AsyncClient):
    resp = await async_client.post(
        "/api/register",
        json={"name": "", "email": "not-an-email", "password": "short", "role": "owner"},
    )
    assert resp.status_code == 422
    errors = resp.json()["errors"]
    assert errors["name"] == ["The name field is required."]
    assert errors["email"] == ["The email field must be a valid email address."]
    assert errors["password"] == ["The password field must be at least 8 characters."]
    assert errors["role"] == ["The selected role is invalid."]


@pytest.mark.anyio
async def test_register_missing_fields(async_client: AsyncClient):
    resp = await async_client.post("/api/register", json={})
    assert resp.status_code == 422
    errors = resp.json()["errors"]
    for field in ("name", "email", "password", "role"):
        assert errors[field] == [f"The {field} field is required."]
