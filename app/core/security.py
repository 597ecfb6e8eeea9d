# app/core/security.py
from __future__ import annotations

"""
CMS Backend — Authentication & Security Helpers
===============================================
- Password hashing (passlib bcrypt)
- Access-token creation (iat/nbf/jti) with a Redis validity lane
- Access-token revocation (logout) via the Redis revocation lane
- FastAPI dependencies for the **current user** (required / optional)

Decoding is delegated to `app.core.jwt`.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import uuid4
import logging

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import InvalidTokenException
from app.core.jwt import decode_token
from app.core.redis_client import redis_wrapper
from app.db.models.user import User
from app.db.session import get_async_db

# ───────────────────────────────────────────────
# 🔐 Security Constants and Setup
# ───────────────────────────────────────────────
ALGORITHM: str = settings.JWT_ALGORITHM

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
security = HTTPBearer(auto_error=False)
logger = logging.getLogger("app.security")


# ───────────────────────────────────────────────
# 🔐 Password Hashing Utilities
# ───────────────────────────────────────────────
def get_password_hash(password: str) -> str:
    """Return a salted hash using Passlib's bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Constant-time verify of a plaintext password against a stored hash."""
    return pwd_context.verify(plain_password, hashed_password)


# ───────────────────────────────────────────────
# 🪪 JWT — Access Token Generation
# ───────────────────────────────────────────────
async def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed **access token** and store its JTI in Redis."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    jti = str(uuid4())

    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "exp": expire,
        "iat": now,
        "nbf": now,
        "jti": jti,
        "token_type": "access",
    }
    token = jwt.encode(payload, settings.JWT_SECRET_KEY.get_secret_value(), algorithm=ALGORITHM)

    ttl_seconds = int((expire - now).total_seconds())
    try:
        await redis_wrapper.client.setex(f"access:jti:{jti}", ttl_seconds, "valid")
        logger.debug("Stored access JTI %s (ttl=%s)", jti, ttl_seconds)
    except Exception as e:  # pragma: no cover
        logger.error("Redis error while storing access JTI: %s", e)
        raise

    return token


async def revoke_access_token(payload: Dict[str, Any]) -> None:
    """Put the token's JTI on the revocation lane for its remaining lifetime."""
    jti = payload["jti"]
    exp = int(payload.get("exp") or 0)
    ttl = max(exp - int(datetime.now(timezone.utc).timestamp()), 1)
    rc = redis_wrapper.client
    await rc.setex(f"revoked:jti:{jti}", ttl, "revoked")
    await rc.delete(f"access:jti:{jti}")
    logger.debug("Revoked access JTI %s (ttl=%s)", jti, ttl)


# ───────────────────────────────────────────────
# 👤 Dependencies — Current User
# ───────────────────────────────────────────────
async def _load_user(request: Request, token: str, db: AsyncSession) -> User:
    payload = await decode_token(token)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise InvalidTokenException()

    user = (await db.execute(select(User).where(User.id == user_id))).scalars().first()
    if not user or not user.is_active:
        raise InvalidTokenException()

    request.state.user_id = user.id
    request.state.token_payload = payload
    return user


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_async_db),
) -> User:
    """Authenticate a user from the presented **access** token (401 otherwise).

    The decoded claims are kept on `request.state.token_payload` for logout.
    """
    if credentials is None or not credentials.credentials:
        raise InvalidTokenException()
    return await _load_user(request, credentials.credentials, db)


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_async_db),
) -> Optional[User]:
    """Anonymous (`None`) when no Authorization header is sent; 401 for a bad one."""
    if not request.headers.get("Authorization"):
        return None
    if credentials is None or not credentials.credentials:
        raise InvalidTokenException()
    return await _load_user(request, credentials.credentials, db)


__all__ = [
    "pwd_context",
    "get_password_hash",
    "verify_password",
    "create_access_token",
    "revoke_access_token",
    "get_current_user",
    "get_optional_user",
]
