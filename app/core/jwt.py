# app/core/jwt.py
from __future__ import annotations

"""
CMS Backend — JWT helpers
=========================
- `decode_token` with signature/claims checks and token-type enforcement
- Redis JTI revocation lane (`revoked:jti:{jti}`)

Notes
-----
- Token *creation* and revocation live in `app.core.security`.
- Every failure surfaces to clients as 401 ``"Unauthenticated."``; the
  specific reason is only logged.
- If Redis is unavailable during the revocation check, behaviour follows
  `AUTH_FAIL_OPEN` (default: fail-closed with HTTP 503).
"""

import logging
import os
from typing import Any, Dict, Optional, Sequence

from fastapi import HTTPException, status
from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings
from app.core.exceptions import InvalidTokenException
from app.core.redis_client import redis_wrapper

logger = logging.getLogger("app.auth")


def _fail_open() -> bool:
    return os.getenv("AUTH_FAIL_OPEN", "0").strip().lower() in {"1", "true", "yes", "on"}


async def _is_revoked(jti: str) -> bool:
    """Return True if the token with this JTI is revoked (`revoked:jti:{jti}`)."""
    try:
        rc = redis_wrapper.client
    except RuntimeError:
        # No Redis client configured → treat as not revoked (dev).
        return False

    try:
        return bool(await rc.get(f"revoked:jti:{jti}"))
    except Exception as e:
        if _fail_open():
            logger.error("Redis unavailable during revocation check (fail-open): %s", e)
            return False
        logger.error("Redis unavailable during revocation check (fail-closed): %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Auth service temporarily unavailable.",
        )


# ─────────────────────────────────────────────────────────────
# 🔓 Decode JWT Token with Redis JTI Revocation Check (Async)
# ─────────────────────────────────────────────────────────────
async def decode_token(
    token: str,
    *,
    expected_types: Optional[Sequence[str]] = ("access",),
    verify_revocation: bool = True,
) -> Dict[str, Any]:
    """Decode and validate a JWT.

    Security checks
    ---------------
    1) Verify signature and standard claims (exp/nbf/iat)
    2) Require `sub` and `jti`
    3) Enforce `token_type` membership
    4) Consult Redis revocation lane
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        logger.info("Token expired.")
        raise InvalidTokenException()
    except JWTError as e:
        logger.warning("JWT decoding failed: %s", e)
        raise InvalidTokenException()

    if not payload.get("sub"):
        logger.warning("Missing sub in token payload.")
        raise InvalidTokenException()

    jti = payload.get("jti")
    if not jti:
        logger.warning("Missing JTI in token.")
        raise InvalidTokenException()

    if expected_types is not None and payload.get("token_type") not in set(expected_types):
        logger.warning(
            "Token type mismatch: got %r, expected one of %s",
            payload.get("token_type"), list(expected_types),
        )
        raise InvalidTokenException()

    if verify_revocation and await _is_revoked(jti):
        logger.warning("Token with JTI %s has been revoked.", jti)
        raise InvalidTokenException()

    return payload


__all__ = ["decode_token"]
