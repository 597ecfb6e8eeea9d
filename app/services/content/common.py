from __future__ import annotations

"""
Shared plumbing for the content services (pages, media, teams, roles).

- `service_errors`: turns unexpected failures into a stable 500 message
  (the traceback is logged; `AppException`s pass through untouched)
- `reload`: re-select a row after a write so server-side values and
  `selectin` relationships are loaded inside the async context
- `validate_name_*`: the shared "display name" rule used by media and teams
- `role_lock`: Redis lock taken by role deletion and by team writes that
  assign a role
"""

from contextlib import asynccontextmanager
from typing import Optional, Type, TypeVar

from fastapi import status
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.forms import ErrorBag
from app.core.exceptions import AppException
from app.core.redis_client import redis_wrapper
from app.utils.text import is_valid_name

ModelT = TypeVar("ModelT")

NAME_MAX_LENGTH = 255


@asynccontextmanager
async def service_errors(db: AsyncSession, failure_message: str):
    try:
        yield
    except AppException:
        raise
    except Exception:
        logger.exception(failure_message)
        try:
            await db.rollback()
        except Exception as e:
            logger.debug("Rollback after failure also failed | err={}", e)
        raise AppException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, message=failure_message)


async def reload(db: AsyncSession, model: Type[ModelT], pk: int) -> ModelT:
    stmt = select(model).where(model.id == pk).execution_options(populate_existing=True)  # type: ignore[attr-defined]
    return (await db.execute(stmt)).scalar_one()


def role_lock(role_id: int):
    """Serialises role deletion against team members being assigned to it."""
    return redis_wrapper.lock(f"lock:role:{role_id}", timeout=10, blocking_timeout=3)


def validate_name_create(value: Optional[str], errors: ErrorBag) -> Optional[str]:
    """Required, at most 255 characters, letters/numbers/space and `- _ . , &`."""
    name = (value or "").strip()
    if not name:
        if not errors.has("name"):
            errors.add("name", "The name field is required.")
        return None
    if len(name) > NAME_MAX_LENGTH:
        errors.add("name", f"The name field must not be greater than {NAME_MAX_LENGTH} characters.")
    if not is_valid_name(name):
        errors.add("name", "The name contains invalid characters.")
    return None if errors.has("name") else name


def validate_name_update(value: Optional[str], errors: ErrorBag) -> Optional[str]:
    """Same rule for partial updates, reported with the update wording."""
    name = (value or "").strip()
    if not name:
        errors.add("name", "The name field is required")
    elif len(name) > NAME_MAX_LENGTH:
        errors.add("name", "The name must not exceed 255 characters")
    elif not is_valid_name(name):
        errors.add("name", "The name contains invalid characters")
    return None if errors.has("name") else name


__all__ = ["service_errors", "reload", "role_lock", "validate_name_create", "validate_name_update", "NAME_MAX_LENGTH"]
