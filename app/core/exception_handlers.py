from __future__ import annotations

"""
Envelope exception handlers.

FastAPI integrates these via `register_exception_handlers(app)` in app/main.py.
Every error is rendered as ``{"status": "error", "message": ...}``; request
validation failures add ``"errors": {field: [messages]}`` using the same
wording the hand-written form validators produce.
"""

from typing import Any, Dict, List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import AppException


def _label(field: str) -> str:
    return field.replace("_", " ")


def _message_for(err: Dict[str, Any], field: str) -> str:
    """Translate a pydantic error entry into a human sentence."""
    etype = err.get("type", "")
    ctx = err.get("ctx") or {}
    label = _label(field)
    if etype == "missing":
        return f"The {label} field is required."
    if etype == "string_too_long":
        return f"The {label} field must not be greater than {ctx.get('max_length')} characters."
    if etype == "string_too_short":
        if ctx.get("min_length") == 1:
            return f"The {label} field is required."
        return f"The {label} field must be at least {ctx.get('min_length')} characters."
    if etype == "string_type":
        return f"The {label} field must be a string."
    if etype in {"int_parsing", "int_type", "int_from_float"}:
        return f"The {label} field must be an integer."
    if etype in {"literal_error", "enum"}:
        return f"The selected {label} is invalid."
    if etype == "json_invalid":
        return "The request body must be valid JSON."
    msg = str(err.get("msg", "Invalid value"))
    for prefix in ("Value error, ", "Assertion failed, "):
        if msg.startswith(prefix):
            msg = msg[len(prefix):]
    return msg


def collect_field_errors(errors: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """Group pydantic errors by field name (first non-location loc segment)."""
    grouped: Dict[str, List[str]] = {}
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "header")]
        field = loc[0] if loc else "body"
        message = _message_for(err, field)
        bucket = grouped.setdefault(field, [])
        if message not in bucket:
            bucket.append(message)
    return grouped


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:  # type: ignore
    if isinstance(exc, AppException):
        body = exc.to_problem()
    else:
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        body = {"status": "error", "message": detail}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": "error",
            "message": "Invalid input data",
            "errors": collect_field_errors(list(exc.errors())),
        },
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # type: ignore
    # Hide internals from clients; keep the traceback in the logs.
    logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"status": "error", "message": "Server Error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)


__all__ = [
    "collect_field_errors",
    "http_exception_handler",
    "validation_exception_handler",
    "global_exception_handler",
    "register_exception_handlers",
]
