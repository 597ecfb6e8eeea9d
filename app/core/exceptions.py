# app/core/exceptions.py
from __future__ import annotations

"""
CMS Backend — Application Exceptions
====================================
A small, consistent layer on top of FastAPI/Starlette's `HTTPException` that
lets us attach structured metadata and render the API's JSON envelope via
`app.core.exception_handlers`.

Key ideas
---------
- One base `AppException` that carries `message`, `code`, `errors`, `extra`.
- Domain exceptions inherit from it and set sane defaults.
- `to_problem()` renders the canonical error envelope:
  ``{"status": "error", "message": ..., "errors"?: {field: [msgs]}}``.

Usage
-----
    raise PermissionDeniedException("You are not authorized to create pages")
    raise ValidationFailed({"title": ["The title contains invalid characters."]})
    raise NotFoundException("Page not found")
"""

from typing import Any, Dict, List, Mapping, Optional

from fastapi import HTTPException, status

__all__ = [
    "AppException",
    "NotFoundException",
    "PermissionDeniedException",
    "ValidationFailed",
    "InvalidTokenException",
]

FieldErrors = Dict[str, List[str]]


# ──────────────────────────────────────────────────────────────
# 📦 Core: AppException
# ──────────────────────────────────────────────────────────────
class AppException(HTTPException):
    """Base application-level exception with optional metadata.

    Attributes
    -----------
    status_code : int
        HTTP status code (e.g., 400/401/403/404/409/422/500).
    message : str
        Human-readable error message (serialized as `detail` as well).
    code : int
        Optional internal/typed error code. Defaults to `status_code`.
    errors : dict[str, list[str]] | None
        Field → messages map for validation failures.
    extra : dict | None
        Additional non-sensitive metadata to surface to clients.
    headers : dict | None
        Optional headers (e.g., `{"WWW-Authenticate": "Bearer"}`).
    """

    def __init__(
        self,
        *,
        status_code: int,
        message: str,
        code: Optional[int] = None,
        errors: Optional[Mapping[str, List[str]]] = None,
        extra: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.code: int = int(code or status_code)
        self.message: str = message
        self.errors: Optional[FieldErrors] = (
            {k: list(v) for k, v in errors.items()} if errors else None
        )
        self.extra: Dict[str, Any] = extra or {}

    # ── [Helper] Canonical body used by handlers ───────────────────────────
    def to_problem(self) -> Dict[str, Any]:
        """Return the error envelope for this exception."""
        body: Dict[str, Any] = {"status": "error", "message": self.message}
        if self.errors is not None:
            body["errors"] = self.errors
        # Avoid leaking obvious secrets if someone passed them in `extra`.
        extra_sanitized = dict(self.extra) if self.extra else {}
        for k in ("token", "authorization", "password", "secret"):
            extra_sanitized.pop(k, None)
        body.update(extra_sanitized)
        return body


class NotFoundException(AppException):
    """Raised when a resource does not exist (or is soft-deleted)."""

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, message=message)


# ──────────────────────────────────────────────────────────────
# 🔐 Authorization domain exceptions
# ──────────────────────────────────────────────────────────────
class PermissionDeniedException(AppException):
    """Raised when a policy check fails for the current user."""

    def __init__(self, message: str = "This action is unauthorized.") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, message=message)


class ValidationFailed(AppException):
    """422 with a per-field error map (``errors``)."""

    def __init__(
        self,
        errors: Mapping[str, List[str]],
        message: str = "Invalid input data",
    ) -> None:
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            message=message,
            errors=errors,
        )

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationFailed":
        return cls({field: [message]})


# ──────────────────────────────────────────────────────────────
# 🔑 Auth/Token exceptions
# ──────────────────────────────────────────────────────────────
class InvalidTokenException(AppException):
    """Raised for missing, invalid, expired or revoked tokens (401)."""

    def __init__(
        self,
        *,
        detail: str = "Unauthenticated.",
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            message=detail,
            headers=headers or {"WWW-Authenticate": "Bearer"},
        )
