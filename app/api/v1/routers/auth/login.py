# app/api/v1/routers/auth/login.py
from __future__ import annotations

"""
Authentication API — login
==========================

Endpoints
---------
POST /login
    Email + password sign-in. Returns `{"token": "<access JWT>"}`.

Security & DX
-------------
- **Route rate limit** keyed per client IP.
- **Sensitive cache headers** on the token-issuing response (no-store).
- **Auth logic delegated** to `app.services.auth.login_service`.
- Neutral errors; audit is handled inside the service layer.

Notes
-----
- We return Pydantic models directly so headers set on `response` (e.g.,
  `Cache-Control: no-store`) are preserved by FastAPI.
"""

from fastapi import APIRouter, Body, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.limiter import rate_limit
from app.db.session import get_async_db
from app.schemas.auth import LoginRequest, TokenResponse
from app.security_headers import set_sensitive_cache
from app.services.auth.login_service import login_user

router = APIRouter(tags=["Authentication"])


# ──────────────────────────────────────────────────────────────
# 🔐 POST /login — Email + Password
# ──────────────────────────────────────────────────────────────
@router.post("/login", response_model=TokenResponse, summary="Email + password login")
@rate_limit("5/minute")
async def login(
    request: Request,
    response: Response,
    payload: LoginRequest = Body(...),
    db: AsyncSession = Depends(get_async_db),
) -> TokenResponse:
    """Authenticate with email/password.

    Returns 401 "Invalid credentials" for an unknown email or a wrong password.
    """
    # [Step 0] Cache hardening
    set_sensitive_cache(response)

    # [Step 1] Delegate to login service (handles audit)
    result = await login_user(payload=payload, db=db, request=request)

    # [Step 2] Return the model so our headers are preserved
    return result


__all__ = ["router", "login"]
