from __future__ import annotations

"""
# CMS Backend — Security Headers & CORS

Security headers and CORS utilities for the JSON API.

## What you get
- **Headers**: CSP (locked down for a JSON API), HSTS (when configured),
  CORP/COOP, Referrer-Policy, X-Content-Type-Options, X-Frame-Options.
- **CORS installer**: strict allow-list from settings (localhost defaults in dev).
- **Skip list**: path prefixes (docs/health) keep their own headers.
- **Cache helper**: `set_sensitive_cache()` for token-bearing / admin responses.

## Quick start
    from app.security_headers import install_security, configure_cors

    app = FastAPI()
    install_security(app)
    configure_cors(app)
"""

from typing import Iterable, List, Optional, Tuple, Union

from fastapi import Request, Response
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

from app.core.config import settings

_API_CSP = "default-src 'none'; frame-ancestors 'none'"


# ─────────────────────────────────────────────────────────────
# 🧩 Middleware (headers + optional cache flags)
# ─────────────────────────────────────────────────────────────

class SecurityHeadersMiddleware:
    """
    Pure ASGI middleware that applies security headers idempotently on every
    response and honours the sensitive-cache flag set on the `Request`.
    """

    def __init__(self, app: ASGIApp, skip_paths: Optional[Iterable[str]] = None) -> None:
        self.app = app
        paths = settings.security_skip_paths_list if skip_paths is None else skip_paths
        self._skip_prefixes: Tuple[str, ...] = tuple(p for p in paths if p)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            return await self.app(scope, receive, send)

        path = scope.get("path", "")
        is_skipped = any(path.startswith(prefix) for prefix in self._skip_prefixes)
        state = scope.setdefault("state", {})

        async def send_wrapper(message):
            if message.get("type") == "http.response.start":
                raw_headers: List[Tuple[bytes, bytes]] = message.setdefault("headers", [])  # type: ignore[assignment]
                if not is_skipped:
                    _apply_headers_to_raw(raw_headers)
                if state.get("_sensitive_cache"):
                    _apply_sensitive_cache_to_raw(raw_headers)
            await send(message)

        await self.app(scope, receive, send_wrapper)


def _has_header(raw_headers: List[Tuple[bytes, bytes]], name: str) -> bool:
    lname = name.lower().encode("latin-1")
    return any(h[0].lower() == lname for h in raw_headers)


def _ensure_header(raw_headers: List[Tuple[bytes, bytes]], name: str, value: str) -> None:
    if not _has_header(raw_headers, name):
        raw_headers.append((name.encode("latin-1"), value.encode("latin-1")))


def _apply_headers_to_raw(raw_headers: List[Tuple[bytes, bytes]]) -> None:
    if settings.HSTS_MAX_AGE > 0:
        _ensure_header(raw_headers, "Strict-Transport-Security", f"max-age={settings.HSTS_MAX_AGE}; includeSubDomains")
    _ensure_header(raw_headers, "X-Content-Type-Options", "nosniff")
    _ensure_header(raw_headers, "X-Frame-Options", "DENY")
    if settings.REFERRER_POLICY:
        _ensure_header(raw_headers, "Referrer-Policy", settings.REFERRER_POLICY)
    _ensure_header(raw_headers, "Cross-Origin-Opener-Policy", "same-origin")
    _ensure_header(raw_headers, "Cross-Origin-Resource-Policy", "same-origin")
    _ensure_header(raw_headers, "X-Permitted-Cross-Domain-Policies", "none")
    _ensure_header(raw_headers, "Content-Security-Policy", _API_CSP)


def _apply_sensitive_cache_to_raw(raw_headers: List[Tuple[bytes, bytes]]) -> None:
    _ensure_header(raw_headers, "Cache-Control", "no-store")
    _ensure_header(raw_headers, "Pragma", "no-cache")
    _ensure_header(raw_headers, "Expires", "0")


# ─────────────────────────────────────────────────────────────
# 🔓 Public helpers (idempotent; safe to call in routes)
# ─────────────────────────────────────────────────────────────

def set_sensitive_cache(target: Union[Response, Request]) -> None:
    """
    Mark a **Response** or **Request** as not cacheable.

    - `Response`: headers are set immediately (idempotent).
    - `Request`: sets a flag read by the middleware at response start.
    """
    if isinstance(target, Response):
        target.headers.setdefault("Cache-Control", "no-store")
        target.headers.setdefault("Pragma", "no-cache")
        target.headers.setdefault("Expires", "0")
        return
    if isinstance(target, Request):
        target.state._sensitive_cache = True
        return
    raise TypeError("set_sensitive_cache expects a Response or Request")


# ─────────────────────────────────────────────────────────────
# 🌐 CORS installer (allow-list, not '*')
# ─────────────────────────────────────────────────────────────

def configure_cors(app) -> None:
    """Install strict CORS based on settings."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.frontend_origins_list,
        allow_origin_regex=settings.ALLOW_ORIGINS_REGEX or None,
        allow_credentials=True,
        allow_methods=["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID", "Idempotency-Key"],
        expose_headers=["Location", "Retry-After", "X-Request-ID"],
        max_age=3600,
    )


# ─────────────────────────────────────────────────────────────
# 🔐 HTTPS redirect + headers middleware
# ─────────────────────────────────────────────────────────────

def install_security(app) -> None:
    """Add HTTPS redirect (optional) and the security headers middleware."""
    if settings.ENABLE_HTTPS_REDIRECT:
        app.add_middleware(HTTPSRedirectMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)


__all__ = [
    "SecurityHeadersMiddleware",
    "install_security",
    "configure_cors",
    "set_sensitive_cache",
]
