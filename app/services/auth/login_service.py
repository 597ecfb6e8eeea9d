# app/services/auth/login_service.py
from __future__ import annotations

"""
Login service — email + password
================================

What this module provides
-------------------------
- **Email + password login** returning a single bearer access token.
- **Neutral errors**: unknown email and wrong password both answer
  401 "Invalid credentials" so accounts cannot be enumerated.
- **Audit** rows for successes and failures (email is hashed, never stored raw).

Assumptions
-----------
- Token helper: `create_access_token` registers the JTI in Redis.
- `AuditEvent` enum and `log_audit_event` available from audit service.
"""

from hashlib import sha256

from fastapi import Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AppException
from app.core.security import create_access_token, verify_password
from app.db.models.user import User
from app.schemas.auth import LoginRequest, TokenResponse
from app.services.audit_log_service import AuditEvent, log_audit_event

INVALID_CREDENTIALS = "Invalid credentials"


def _invalid_credentials() -> AppException:
    return AppException(status_code=status.HTTP_401_UNAUTHORIZED, message=INVALID_CREDENTIALS)


# ─────────────────────────────────────────────────────────────
# 🔐 Email + Password login
# ─────────────────────────────────────────────────────────────
async def login_user(
    payload: LoginRequest,
    db: AsyncSession,
    request: Request,
) -> TokenResponse:
    """
    Authenticate a user by email and password and issue an access token.

    Security properties
    -------------------
    - **Neutral errors** on user lookup and password mismatch.
    - Deactivated accounts are treated like unknown ones.
    """
    email_norm = payload.email

    # ── [Step 1] Lookup user (neutral error on miss) ─────────────────────────
    user = (await db.execute(select(User).where(User.email == email_norm))).scalar_one_or_none()
    if not user:
        await log_audit_event(
            db,
            user=None,
            action=AuditEvent.LOGIN,
            status="FAILURE",
            request=request,
            meta_data={"reason": "user_not_found", "email_sha256": sha256(email_norm.encode()).hexdigest()},
        )
        raise _invalid_credentials()

    # ── [Step 2] Verify password (timing-safe) ───────────────────────────────
    if not verify_password(payload.password, user.hashed_password):
        await log_audit_event(
            db, user=user, action=AuditEvent.LOGIN, status="FAILURE", request=request, meta_data={"reason": "invalid_password"}
        )
        raise _invalid_credentials()

    # ── [Step 3] Account gate ────────────────────────────────────────────────
    if not getattr(user, "is_active", True):
        await log_audit_event(
            db, user=user, action=AuditEvent.LOGIN, status="FAILURE", request=request, meta_data={"reason": "account_deactivated"}
        )
        raise _invalid_credentials()

    # ── [Step 4] Issue access token ──────────────────────────────────────────
    token = await create_access_token(user.id)

    await log_audit_event(db, user=user, action=AuditEvent.LOGIN, status="SUCCESS", request=request)
    return TokenResponse(token=token)


__all__ = ["login_user", "INVALID_CREDENTIALS"]
