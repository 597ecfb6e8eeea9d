# app/api/v1/routers/auth/register.py
from __future__ import annotations

"""
Authentication API — register
=============================

POST /register
    Create an account (`name`, `email`, `password`, `role`) and return a
    bearer token for it (201).
"""

from fastapi import APIRouter, Body, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.limiter import rate_limit
from app.db.session import get_async_db
from app.schemas.auth import RegisterRequest, TokenResponse
from app.security_headers import set_sensitive_cache
from app.services.auth.register_service import register_user

router = APIRouter(tags=["Authentication"])


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
)
@rate_limit("10/minute")
async def register(
    request: Request,
    response: Response,
    payload: RegisterRequest = Body(...),
    db: AsyncSession = Depends(get_async_db),
) -> TokenResponse:
    # [Step 0] Cache hardening
    set_sensitive_cache(response)

    # [Step 1] Delegate (uniqueness, hashing, token, audit)
    return await register_user(payload, db, request)


__all__ = ["router", "register"]
