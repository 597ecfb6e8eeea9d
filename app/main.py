# app/main.py
from __future__ import annotations

"""
# CMS API — Application Entrypoint (FastAPI)

ASGI application factory and lifecycle for the CMS backend (pages, media,
team members and roles behind bearer-token auth).

## Design Goals
- Deterministic, testable **app factory** (`create_app`) with explicit lifespan.
- Explicit **middleware order**:
  1) request id → 2) security headers/HTTPS → 3) CORS → 4) gzip →
  5) rate limits → 6) strip `Server` header.
- Envelope exception handlers for every error path.
- OpenAPI UI/schema only on staging (`settings.docs_enabled`).
- Best-effort infra connections; never crash on startup when Redis is down.

## Probes
- `/healthz` — liveness (process up).
- `/readyz` — readiness (quick DB/Redis checks).
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable
import os

from fastapi import FastAPI, Request
from loguru import logger
from starlette.middleware.gzip import GZipMiddleware
from starlette.responses import JSONResponse, Response

# -- Logging bootstrap (Loguru + stdlib intercept) ----------------------------
from app.core import logger as _logsetup  # noqa: F401

from app.api.v1.routers import router as api_router
from app.core.config import settings
from app.core.exception_handlers import register_exception_handlers
from app.core.limiter import install_rate_limiter
from app.core.redis_client import redis_wrapper
from app.db.session import async_engine, db_healthcheck
from app.middleware.request_id import RequestIDMiddleware
from app.security_headers import configure_cors, install_security


# ─────────────────────────────────────────────────────────────────────────────
# 🔄 Lifespan: startup & shutdown
# ─────────────────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Startup:
        - Best-effort connect to Redis (non-fatal on failure).

    Shutdown:
        - Dispose the DB engine and close Redis (both best-effort).
    """
    logger.info("✅ {} starting up (env={})", settings.PROJECT_NAME, settings.ENV)

    try:
        await redis_wrapper.connect()
        logger.info("🔌 Redis connected")
    except Exception:
        logger.exception("Redis connect failed (continuing in degraded mode)")

    try:
        yield
    finally:
        try:
            await async_engine.dispose()
            logger.info("🛑 Database engine disposed")
        except Exception:
            logger.exception("Error disposing DB engine")

        try:
            await redis_wrapper.close()
            logger.info("🛑 Redis connection closed")
        except Exception:
            logger.exception("Error closing Redis client")

        logger.info("🛑 {} shutting down", settings.PROJECT_NAME)


# ─────────────────────────────────────────────────────────────────────────────
# 🏗️ App factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app() -> FastAPI:
    """
    Build and configure the FastAPI app instance.

    Returns:
        FastAPI: application with middleware, exception handlers, the API
        router under `settings.API_PREFIX`, and health/readiness endpoints.
    """
    enable_docs = settings.docs_enabled

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        docs_url="/docs" if enable_docs else None,
        redoc_url="/redoc" if enable_docs else None,
        openapi_url="/openapi.json" if enable_docs else None,
        lifespan=lifespan,
    )

    # ── Middlewares (order matters) ─────────────────────────────────────────
    app.add_middleware(RequestIDMiddleware)  # 1) Correlation ID
    install_security(app)                    # 2) Security headers + HTTPS redirect
    configure_cors(app)                      # 3) CORS allow-list
    app.add_middleware(GZipMiddleware, minimum_size=1024)  # 4) GZip
    install_rate_limiter(app)                # 5) SlowAPI middleware + 429 envelope

    # 6) Strip the Server header at the end of the chain
    @app.middleware("http")
    async def _strip_server_header(request: Request, call_next: Callable) -> Response:
        response: Response = await call_next(request)
        if "server" in response.headers:
            del response.headers["server"]
        return response

    # ── Exception handlers (envelope) ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Routers ─────────────────────────────────────────────────────────────
    app.include_router(api_router, prefix=settings.API_PREFIX)

    # ── Meta endpoints ──────────────────────────────────────────────────────
    @app.get("/healthz", tags=["meta"])
    async def healthz() -> dict[str, bool]:
        """Liveness probe: `{"ok": true}` while the process is responsive."""
        return {"ok": True}

    @app.get("/readyz", tags=["meta"])
    async def readyz() -> JSONResponse:
        """Readiness probe (quick DB + Redis checks); 503 when either is down."""
        redis_ok = await redis_wrapper.is_connected()
        if not redis_ok:
            try:
                await redis_wrapper.connect()
                redis_ok = await redis_wrapper.is_connected()
            except Exception:
                logger.warning("Redis reconnect failed during readiness check")
                redis_ok = False

        db_ok = await db_healthcheck()
        ready = bool(db_ok and redis_ok)
        return JSONResponse(
            {"ready": ready, "checks": {"db": db_ok, "redis": redis_ok}},
            status_code=200 if ready else 503,
        )

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        return JSONResponse(
            {"name": settings.PROJECT_NAME, "docs": app.docs_url or "", "version": settings.VERSION}
        )

    return app


# ─────────────────────────────────────────────────────────────────────────────
# 🚀 Module-level ASGI app for Uvicorn/Gunicorn
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()
__all__ = ["create_app", "app"]


# Local dev runner (prefer: `uvicorn app.main:app --reload`)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "1") == "1",
        workers=int(os.getenv("WORKERS", "1")),
        log_level=os.getenv("LOG_LEVEL", "info"),
    )
