from __future__ import annotations

"""
Role service
============

Job roles assigned to team members. Names are unique across every row,
trashed ones included, so a soft-deleted name stays reserved.

Deleting a role still referenced by a live team member is refused (422).
The reference check and the soft delete run under `role_lock`, the same
lock team writes take when they assign a role.
"""

from typing import Any, List, Mapping, Optional, Type, TypeVar

from fastapi import Request, status
from loguru import logger
from pydantic import BaseModel, ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.forms import fits_bigint, read_payload
from app.core.exception_handlers import collect_field_errors
from app.core.exceptions import AppException, NotFoundException, ValidationFailed
from app.db.models.role import Role
from app.db.models.team import Team
from app.db.models.user import User
from app.dependencies.admin import authorize
from app.schemas.role import RoleCreate, RoleOut, RoleUpdate
from app.services.audit_log_service import AuditEvent, log_audit_event
from app.services.content.common import reload, role_lock, service_errors

ROLE_NOT_FOUND = "Role not found"
NAME_TAKEN = "The name has already been taken."
ROLE_IN_USE = "Cannot delete role as it is being used by team members"

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def _parse(schema: Type[SchemaT], payload: Mapping[str, Any]) -> SchemaT:
    """Validate a JSON/form body against `schema`, reporting errors in the 422 envelope."""
    try:
        return schema.model_validate(dict(payload))
    except ValidationError as e:
        raise ValidationFailed(collect_field_errors(list(e.errors())))


async def _get_role_or_404(db: AsyncSession, role_id: int) -> Role:
    if not fits_bigint(role_id):
        raise NotFoundException(ROLE_NOT_FOUND)
    stmt = select(Role).where(Role.id == role_id, Role.deleted_at.is_(None))
    role = (await db.execute(stmt)).scalar_one_or_none()
    if role is None:
        raise NotFoundException(ROLE_NOT_FOUND)
    return role


async def _name_taken(db: AsyncSession, name: str, *, exclude_id: Optional[int] = None) -> bool:
    stmt = select(Role.id).where(Role.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Role.id != exclude_id)
    return (await db.execute(stmt.limit(1))).first() is not None


async def count_live_members(db: AsyncSession, role_id: int) -> int:
    stmt = select(func.count(Team.id)).where(Team.role_id == role_id, Team.deleted_at.is_(None))
    return int((await db.execute(stmt)).scalar_one())


async def list_roles(db: AsyncSession) -> List[RoleOut]:
    async with service_errors(db, "Unable to fetch roles"):
        stmt = (
            select(Role)
            .where(Role.deleted_at.is_(None))
            .order_by(Role.created_at.desc(), Role.id.desc())
        )
        return [RoleOut.model_validate(r) for r in (await db.execute(stmt)).scalars().all()]


async def get_role(db: AsyncSession, role_id: int) -> RoleOut:
    async with service_errors(db, "Unable to fetch role"):
        return RoleOut.model_validate(await _get_role_or_404(db, role_id))


async def create_role(db: AsyncSession, *, user: User, request: Request) -> RoleOut:
    payload = _parse(RoleCreate, await read_payload(request))

    async with service_errors(db, "Unable to create role"):
        if await _name_taken(db, payload.name):
            raise ValidationFailed.single("name", NAME_TAKEN)

        role = Role(name=payload.name, description=payload.description)
        db.add(role)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ValidationFailed.single("name", NAME_TAKEN)

        role = await reload(db, Role, role.id)
        await log_audit_event(
            db, user=user, action=AuditEvent.ROLE_CREATE, status="SUCCESS", request=request,
            meta_data={"role_id": role.id, "name": role.name},
        )
        logger.info("Role created | id={} name={}", role.id, role.name)
        return RoleOut.model_validate(role)


async def update_role(
    db: AsyncSession,
    *,
    role_id: int,
    user: User,
    request: Request,
) -> RoleOut:
    """Apply the fields that were sent; omitted fields stay untouched."""
    role = await _get_role_or_404(db, role_id)
    authorize(user, "update", "role")
    payload = _parse(RoleUpdate, await read_payload(request))

    async with service_errors(db, "Unable to update role"):
        sent = payload.model_fields_set
        if "name" in sent:
            if payload.name is None:
                raise ValidationFailed.single("name", "The name field is required.")
            if await _name_taken(db, payload.name, exclude_id=role.id):
                raise ValidationFailed.single("name", NAME_TAKEN)
            role.name = payload.name
        if "description" in sent:
            role.description = payload.description

        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ValidationFailed.single("name", NAME_TAKEN)

        role = await reload(db, Role, role_id)
        await log_audit_event(
            db, user=user, action=AuditEvent.ROLE_UPDATE, status="SUCCESS", request=request,
            meta_data={"role_id": role.id, "fields": sorted(sent)},
        )
        return RoleOut.model_validate(role)


async def delete_role(db: AsyncSession, *, role_id: int, user: User, request: Request) -> None:
    role = await _get_role_or_404(db, role_id)
    authorize(user, "delete", "role")

    async with service_errors(db, "Unable to delete role"):
        async with role_lock(role_id):
            if await count_live_members(db, role_id) > 0:
                raise AppException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, message=ROLE_IN_USE)
            role.soft_delete()
            await db.commit()

        await log_audit_event(
            db, user=user, action=AuditEvent.ROLE_DELETE, status="SUCCESS", request=request,
            meta_data={"role_id": role_id},
        )
        logger.info("Role deleted | id={}", role_id)


__all__ = [
    "list_roles",
    "get_role",
    "create_role",
    "update_role",
    "delete_role",
    "count_live_members",
]
