# app/api/v1/routers/auth/register_routes.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from app.security_headers import set_sensitive_cache

from . import login, logout, me, register


def _no_store_dep(response: Response) -> None:
    # ── [Step 1] Apply cache-hardening headers for auth endpoints ─────────
    set_sensitive_cache(response)


# ──────────────────────────────────────────────────────────────────────────────
# ⚙️  Factory: build an auth router with consistent defaults
#     - base_prefix: mount everything under a shared prefix if desired
#     - add_no_store: apply Cache-Control: no-store on all included routes
# ──────────────────────────────────────────────────────────────────────────────
def build_auth_router(
    *,
    base_prefix: str = "",
    add_no_store: bool = True,
) -> APIRouter:
    dependencies = [Depends(_no_store_dep)] if add_no_store else None
    router = APIRouter(prefix=base_prefix, dependencies=dependencies, tags=["Auth"])

    common_responses = {
        401: {"description": "Unauthorized"},
        422: {"description": "Validation Error"},
        429: {"description": "Too Many Requests"},
        500: {"description": "Internal Server Error"},
    }

    router.include_router(register.router, responses=common_responses)  # /register
    router.include_router(login.router, responses=common_responses)     # /login
    router.include_router(logout.router, responses=common_responses)    # /logout
    router.include_router(me.router, responses=common_responses)        # /user

    return router


router = build_auth_router()
