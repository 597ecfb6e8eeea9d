# app/api/v1/routers/auth/me.py
from __future__ import annotations

"""
Authentication API — current user
=================================

GET /user
    The authenticated account as a bare object (no envelope, no password).
"""

from fastapi import APIRouter, Depends, Request, Response

from app.core.limiter import rate_limit
from app.core.security import get_current_user
from app.db.models.user import User
from app.schemas.user import UserOut
from app.security_headers import set_sensitive_cache

router = APIRouter(tags=["Authentication"])


@router.get("/user", response_model=UserOut, summary="Current user")
@rate_limit("60/minute")
async def me(
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
) -> UserOut:
    set_sensitive_cache(response)
    return UserOut.model_validate(current_user)


__all__ = ["router", "me"]
