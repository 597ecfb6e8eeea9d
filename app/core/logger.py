# app/core/logger.py
from __future__ import annotations

"""
CMS Backend — Logging (Loguru)
------------------------------
Importing this module configures logging once for the process:

- console sink: colourised lines, or one JSON object per line with `LOG_JSON=1`
- optional rotating file sink (`LOG_TO_FILE=1`)
- optional audit sink: records from the `app.audit` logger are also written
  to their own file (`LOG_AUDIT_FILE`, empty disables it)
- stdlib loggers (uvicorn, fastapi, starlette, sqlalchemy, `app.*`) are
  routed into Loguru; the originating logger name is kept as
  `extra.logger_name`
- `request_id` comes from the context bound by `RequestIDMiddleware`

Env
---
LOG_LEVEL=INFO|DEBUG|WARNING|ERROR   (default: INFO)
LOG_JSON=1                           (default: 0)
LOG_TO_FILE=1                        (default: 1)
LOG_DIR=logs  LOG_FILE=app.log  LOG_AUDIT_FILE=audit.log
LOG_ROTATION=10 MB  LOG_RETENTION=14 days
APP_DEBUG=1                          (backtrace/diagnose on the console sink)
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict

from dotenv import load_dotenv
from loguru import logger

load_dotenv()

AUDIT_LOGGER_NAME = "app.audit"
INTERCEPTED_LOGGERS = (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "fastapi",
    "starlette",
    "sqlalchemy.engine",
    "app",
)


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


# ─────────────────────────────────────────────────────────────
# 🧾 Formatters
# ─────────────────────────────────────────────────────────────
def _escape(value: str) -> str:
    # Loguru treats <...> as colour markup
    return value.replace("<", "[").replace(">", "]")


def format_pretty(record: Dict[str, Any]) -> str:
    extra = record["extra"]
    extra.setdefault("request_id", "-")
    source = _escape(extra.get("logger_name") or record["name"])
    line = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
        f"<cyan>{source}</cyan>:<cyan>{_escape(record['function'])}</cyan>:<cyan>{record['line']}</cyan> "
        "[{extra[request_id]}] - <level>{message}</level>\n"
    )
    if record["exception"]:
        line += "{exception}\n"
    return line


def format_json(record: Dict[str, Any]) -> str:
    """One JSON document per line (extra fields flattened, non-scalars stringified)."""
    extra = record["extra"]
    doc: Dict[str, Any] = {
        "time": record["time"].isoformat(),
        "level": record["level"].name,
        "logger": extra.get("logger_name") or record["name"],
        "function": record["function"],
        "line": record["line"],
        "message": record["message"],
        "request_id": extra.get("request_id"),
    }
    for key, value in extra.items():
        if key in doc or key in ("logger_name", "serialized"):
            continue
        doc[key] = value if isinstance(value, (str, int, float, bool, type(None))) else str(value)
    if record["exception"]:
        doc["exception"] = repr(record["exception"].value)
    extra["serialized"] = json.dumps(doc, ensure_ascii=False, default=str)
    return "{extra[serialized]}\n"


def _is_audit(record: Dict[str, Any]) -> bool:
    return str(record["extra"].get("logger_name", "")).startswith(AUDIT_LOGGER_NAME)


# ─────────────────────────────────────────────────────────────
# 🔁 stdlib → Loguru
# ─────────────────────────────────────────────────────────────
class InterceptHandler(logging.Handler):
    """Forward stdlib records into Loguru, keeping the caller frame and logger name."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: Any = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.bind(logger_name=record.name).opt(depth=6, exception=record.exc_info).log(
            level, record.getMessage()
        )


# ─────────────────────────────────────────────────────────────
# ⚙️ Setup
# ─────────────────────────────────────────────────────────────
def setup_logging() -> None:
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    debug = _env_flag("APP_DEBUG")
    fmt: Callable[[Dict[str, Any]], str] = format_json if _env_flag("LOG_JSON") else format_pretty

    logger.remove()
    logger.add(sys.stdout, level=level, format=fmt, enqueue=True, backtrace=debug, diagnose=debug)

    if _env_flag("LOG_TO_FILE", "1"):
        log_dir = Path(os.getenv("LOG_DIR", "logs"))
        log_dir.mkdir(parents=True, exist_ok=True)
        rotation = os.getenv("LOG_ROTATION", "10 MB")
        retention = os.getenv("LOG_RETENTION", "14 days")
        logger.add(
            str(log_dir / os.getenv("LOG_FILE", "app.log")),
            level=level,
            format=fmt,
            rotation=rotation,
            retention=retention,
            enqueue=True,
        )
        audit_file = os.getenv("LOG_AUDIT_FILE", "audit.log").strip()
        if audit_file:
            logger.add(
                str(log_dir / audit_file),
                level="INFO",
                format=format_json,
                filter=_is_audit,
                rotation=rotation,
                retention=retention,
                enqueue=True,
            )

    for name in INTERCEPTED_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False
        # SQL echo stays opt-in through SQLAlchemy's own `echo` flag
        std_logger.setLevel(logging.WARNING if name == "sqlalchemy.engine" else level)


setup_logging()

__all__ = ["setup_logging", "InterceptHandler", "format_pretty", "format_json", "AUDIT_LOGGER_NAME"]
