"""
CMS • API Router Aggregator
===========================

Exports both the **combined `router`** (ready to include) and each
**individual sub-router** so callers can mount them as needed.

Quick usage
-----------
    from app.api.v1.routers import router as api_router
    app.include_router(api_router, prefix="/api")

Or with the factory:

    from app.api.v1.routers import build_v1_router
    app.include_router(build_v1_router(), prefix="/api")

Security notes
--------------
- This layer is a pure aggregator; **auth & rate limits live in child routers**.
- Cache headers set by child routers are preserved here.
"""

from fastapi import APIRouter

from .auth.register_routes import router as auth_router
from .content import media_router, pages_router, roles_router, router as content_router, teams_router


# ─────────────────────────────────────────────────────────────────────────────
# 🧩 Factory: build the combined router with a stable path layout
# ─────────────────────────────────────────────────────────────────────────────
def build_v1_router() -> APIRouter:
    """
    Compose the API surface into a single `APIRouter`.

    Includes `/register`, `/login`, `/logout`, `/user` and the content
    resources (`/pages`, `/media`, `/teams`, `/roles`), all without an
    extra prefix.
    """
    r = APIRouter()
    r.include_router(auth_router)
    r.include_router(content_router)
    return r


router = build_v1_router()


__all__ = [
    "router",
    "build_v1_router",
    "auth_router",
    "content_router",
    "pages_router",
    "media_router",
    "teams_router",
    "roles_router",
]
