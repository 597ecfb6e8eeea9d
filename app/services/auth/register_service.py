"""
Register service — account creation + first access token
========================================================

Core implementation for **new user registration**, kept apart from the API
layer so the router stays a thin shell.

Key behaviors
-------------
- **Normalized email** (done by the request schema) and server-side bcrypt
  **password hashing**.
- **Race-safe** duplicate handling: a pre-check for the friendly 422 plus
  `IntegrityError` recovery on the unique index.
- **Neutral auditing** for success (hashes, not raw PII).
- Returns a freshly minted access token so the client is signed in at once.
"""

from hashlib import sha256

from fastapi import Request
from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationFailed
from app.core.security import create_access_token, get_password_hash
from app.db.models.user import User
from app.schemas.auth import RegisterRequest, TokenResponse
from app.services.audit_log_service import AuditEvent, log_audit_event

EMAIL_TAKEN = "The email has already been taken."


def _email_hash(email: str) -> str:
    return sha256(email.encode()).hexdigest()


async def register_user(payload: RegisterRequest, db: AsyncSession, request: Request) -> TokenResponse:
    """Create the account and return `{"token": ...}`.

    Raises
    ------
    ValidationFailed
        When the email is already registered (422 under `errors.email`).
    """
    # ── [Step 1] Friendly uniqueness check ───────────────────────────────────
    existing = (await db.execute(select(User.id).where(User.email == payload.email))).first()
    if existing:
        raise ValidationFailed.single("email", EMAIL_TAKEN)

    # ── [Step 2] Persist the user ────────────────────────────────────────────
    user = User(
        name=payload.name,
        email=payload.email,
        hashed_password=get_password_hash(payload.password),
        role=payload.role,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration with the same email
        await db.rollback()
        raise ValidationFailed.single("email", EMAIL_TAKEN)
    await db.refresh(user)

    # ── [Step 3] Issue the access token ──────────────────────────────────────
    token = await create_access_token(user.id)

    await log_audit_event(
        db,
        user=user,
        action=AuditEvent.REGISTER,
        status="SUCCESS",
        request=request,
        meta_data={"email_sha256": _email_hash(payload.email), "role": payload.role},
    )
    logger.info("Registered user id={} role={}", user.id, user.role)
    return TokenResponse(token=token)


__all__ = ["register_user", "EMAIL_TAKEN"]
