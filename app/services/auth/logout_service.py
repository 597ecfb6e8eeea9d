from __future__ import annotations

"""
Logout service
==============

Revokes the **access token** presented on the request. The JTI goes on the
Redis revocation lane for the token's remaining lifetime and its validity key
is removed, so any later use of the same token answers 401.

The token has already been decoded by `get_current_user`, which leaves the
claims on `request.state.token_payload`.
"""

from typing import Any, Dict, Optional

from fastapi import Request, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AppException, InvalidTokenException
from app.core.security import revoke_access_token
from app.db.models.user import User
from app.services.audit_log_service import AuditEvent, log_audit_event


async def logout_user(user: User, db: AsyncSession, request: Request) -> None:
    payload: Optional[Dict[str, Any]] = getattr(request.state, "token_payload", None)
    if not payload or not payload.get("jti"):
        raise InvalidTokenException()

    try:
        await revoke_access_token(payload)
    except Exception:
        logger.exception("Token revocation failed for user id={}", user.id)
        raise AppException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, message="Unable to logout")

    await log_audit_event(
        db,
        user=user,
        action=AuditEvent.LOGOUT,
        status="SUCCESS",
        request=request,
        meta_data={"jti": payload["jti"]},
    )


__all__ = ["logout_user"]
