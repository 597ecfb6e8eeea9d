# app/services/audit_log_service.py
from __future__ import annotations

"""
CMS — Audit Log Service (async, best-effort)
============================================

Purpose
-------
Persist structured audit trails for authentication and content mutations,
with request metadata for traceability.

Design notes
------------
- **Proxy-aware IP** extraction (shared with the rate limiter).
- Correlates with `request.state.request_id` (see RequestID middleware).
- JSON-serializable `meta_data` with secret-key scrubbing.
- **Best-effort** writes: failures are logged and swallowed so business
  flows are never blocked by auditing.

Usage
-----
    await log_audit_event(
        db,
        user=current_user,
        action=AuditEvent.PAGE_CREATE,
        status="SUCCESS",
        request=request,
        meta_data={"page_id": page.id},
    )
"""

from enum import Enum
import json
import logging
from typing import Any, Dict, Optional, Union

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.limiter import client_ip
from app.db.models.audit_log import AuditLog
from app.db.models.user import User
from app.middleware.request_id import get_request_id

logger = logging.getLogger("app.audit")


# ─────────────────────────────────────────────────────────────
# 📋 Enum: Audit Event Types
# ─────────────────────────────────────────────────────────────
class AuditEvent(str, Enum):
    # 🎯 Auth
    REGISTER = "REGISTER"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"

    # 📰 Content
    PAGE_CREATE = "PAGE_CREATE"
    PAGE_UPDATE = "PAGE_UPDATE"
    PAGE_DELETE = "PAGE_DELETE"
    MEDIA_CREATE = "MEDIA_CREATE"
    MEDIA_UPDATE = "MEDIA_UPDATE"
    MEDIA_DELETE = "MEDIA_DELETE"
    TEAM_CREATE = "TEAM_CREATE"
    TEAM_UPDATE = "TEAM_UPDATE"
    TEAM_DELETE = "TEAM_DELETE"
    ROLE_CREATE = "ROLE_CREATE"
    ROLE_UPDATE = "ROLE_UPDATE"
    ROLE_DELETE = "ROLE_DELETE"


# ─────────────────────────────────────────────────────────────
# 🔎 Helpers: request metadata & meta scrubbing
# ─────────────────────────────────────────────────────────────
_SENSITIVE_KEYS = {
    "authorization",
    "token",
    "access_token",
    "password",
    "secret",
    "cookie",
    "set-cookie",
}


def _scrub(obj: Any) -> Any:
    """Recursively remove obvious secret keys from dicts/lists."""
    if isinstance(obj, dict):
        return {k: _scrub(v) for k, v in obj.items() if str(k).lower() not in _SENSITIVE_KEYS}
    if isinstance(obj, list):
        return [_scrub(v) for v in obj]
    return obj


def _safe_metadata(meta_data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not meta_data:
        return {}
    clean = _scrub(dict(meta_data))
    try:
        json.dumps(clean)
        return clean
    except (TypeError, ValueError):
        return {"raw": "non-serializable metadata"}


def _request_snapshot(request: Optional[Request]) -> Dict[str, Any]:
    if not request:
        return {}
    return {"method": request.method, "path": request.url.path}


# ─────────────────────────────────────────────────────────────
# 🧠 Audit Writer (best-effort, never raises)
# ─────────────────────────────────────────────────────────────
async def log_audit_event(
    db: AsyncSession,
    *,
    user: Optional[User] = None,
    action: Union[str, AuditEvent],
    status: str,
    request: Optional[Request] = None,
    meta_data: Optional[Dict[str, Any]] = None,
    commit: bool = True,
) -> None:
    """Persist an audit log row for the given action.

    Any exception is **caught and logged**; callers do not need try/except.
    """
    try:
        clean_meta = _safe_metadata(meta_data)
        for k, v in _request_snapshot(request).items():
            clean_meta.setdefault(k, v)

        entry = AuditLog(
            user_id=getattr(user, "id", None),
            action=action.value if isinstance(action, Enum) else str(action),
            status=str(status or "").upper(),
            ip_address=client_ip(request) if request else None,
            user_agent=request.headers.get("user-agent") if request else None,
            request_id=(get_request_id(request) or None) if request else None,
            metadata_json=clean_meta or None,
        )
        db.add(entry)
        await db.flush()
        if commit:
            await db.commit()
    except Exception as e:  # pragma: no cover
        try:
            await db.rollback()
        except Exception:
            pass
        logger.exception("[AUDIT] Failed to write audit log: %s", e)


__all__ = ["AuditEvent", "log_audit_event"]
