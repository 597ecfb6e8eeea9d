from __future__ import annotations

"""
CMS · HTTP Utilities
====================

Shared helpers for API routers:

- Success envelope responses (`json_success`)
- No-store JSON helper for admin responses
- Slug sanitization for public page lookups
- `Idempotency-Key` replay for create endpoints (Redis, best-effort)

Notes
-----
• All helpers aim to be side-effect free and fast; validation helpers return
  the cleaned value or raise an `AppException`.
• Idempotency snapshots live for `IDEMPOTENCY_TTL_SECONDS` and are scoped by
  endpoint and caller, so two admins sending the same key never collide.
"""

import json
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from loguru import logger

from app.core.config import settings
from app.core.exceptions import ValidationFailed
from app.core.redis_client import redis_wrapper
from app.utils.text import is_valid_slug

__all__ = [
    "json_success",
    "json_no_store",
    "sanitize_slug",
    "idempotency_replay",
    "idempotency_remember",
]

MAX_SLUG_LENGTH = 255


# ─────────────────────────────────────────────────────────────────────────────
# 📦 Envelope responses
# ─────────────────────────────────────────────────────────────────────────────

def _to_plain(obj: Any) -> Any:
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    if isinstance(obj, (list, tuple)):
        return [_to_plain(x) for x in obj]
    if isinstance(obj, dict):
        return {k: _to_plain(v) for k, v in obj.items()}
    return obj


def _envelope(data: Any, message: str, include_data: bool) -> Dict[str, Any]:
    body: Dict[str, Any] = {"status": "success"}
    if include_data:
        body["data"] = jsonable_encoder(_to_plain(data))
    body["message"] = message
    return body


def json_success(
    data: Any = None,
    message: str = "",
    status_code: int = 200,
    *,
    include_data: bool = True,
) -> JSONResponse:
    """`{"status": "success", "data": ..., "message": ...}` (deletes pass `include_data=False`)."""
    return JSONResponse(content=_envelope(data, message, include_data), status_code=status_code)


def json_no_store(
    data: Any = None,
    message: str = "",
    status_code: int = 200,
    *,
    include_data: bool = True,
) -> JSONResponse:
    """
    Same envelope as `json_success` with strict `no-store` caching.

    Used for admin mutations so intermediaries never cache them.
    """
    resp = json_success(data, message, status_code, include_data=include_data)
    resp.headers["Cache-Control"] = "no-store"
    resp.headers["Pragma"] = "no-cache"
    resp.headers["Expires"] = "0"
    return resp


# ─────────────────────────────────────────────────────────────────────────────
# 🔤 Slug sanitization
# ─────────────────────────────────────────────────────────────────────────────

def sanitize_slug(slug: Optional[str]) -> str:
    """Validate a public page slug; 422 under `errors.slug` when malformed."""
    value = (slug or "").strip()
    if not value:
        raise ValidationFailed.single("slug", "The slug is required")
    if not is_valid_slug(value):
        raise ValidationFailed.single("slug", "Invalid slug format")
    if len(value) > MAX_SLUG_LENGTH:
        raise ValidationFailed.single("slug", "The slug is too long")
    return value


# ─────────────────────────────────────────────────────────────────────────────
# 🔁 Idempotency (create endpoints)
# ─────────────────────────────────────────────────────────────────────────────

def _idem_key(request: Request, scope: str) -> Optional[str]:
    raw = (request.headers.get("Idempotency-Key") or "").strip()
    if not raw or len(raw) > 128:
        return None
    owner = getattr(request.state, "user_id", None) or "anon"
    return f"idem:{scope}:{owner}:{raw}"


async def idempotency_replay(request: Request, scope: str) -> Optional[JSONResponse]:
    """Return the stored response for a repeated `Idempotency-Key`, if any."""
    key = _idem_key(request, scope)
    if not key:
        return None
    try:
        snap = await redis_wrapper.idempotency_get(key)
    except Exception as e:
        logger.debug("Idempotency lookup skipped | key={} | err={}", key, e)
        return None
    if not snap:
        return None
    logger.info("Idempotent replay | scope={}", scope)
    return JSONResponse(content=snap["body"], status_code=int(snap["status_code"]))


async def idempotency_remember(request: Request, scope: str, response: JSONResponse) -> None:
    """Snapshot a successful create response under the request's key."""
    key = _idem_key(request, scope)
    if not key:
        return
    try:
        await redis_wrapper.idempotency_set(
            key,
            {"status_code": response.status_code, "body": _decode_body(response)},
            ttl_seconds=settings.IDEMPOTENCY_TTL_SECONDS,
        )
    except Exception as e:
        logger.debug("Idempotency snapshot skipped | key={} | err={}", key, e)


def _decode_body(response: JSONResponse) -> Any:
    return json.loads(bytes(response.body).decode("utf-8"))
