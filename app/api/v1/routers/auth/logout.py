# app/api/v1/routers/auth/logout.py
from __future__ import annotations

"""
Authentication API — logout
===========================

POST /logout
    Revokes the bearer token used for the call. Answers 204 with no body;
    replaying the same token afterwards gives 401.
"""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.limiter import rate_limit
from app.core.security import get_current_user
from app.db.models.user import User
from app.db.session import get_async_db
from app.security_headers import set_sensitive_cache
from app.services.auth.logout_service import logout_user

router = APIRouter(tags=["Authentication"])


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, summary="Revoke the current token")
@rate_limit("30/minute")
async def logout(
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
) -> None:
    set_sensitive_cache(response)
    await logout_user(current_user, db, request)


__all__ = ["router", "logout"]
