from __future__ import annotations

"""
Team service
============

Public roster of team members. Each entry links one user account to a job
role and carries a name, a bio and a profile picture (`teams/YYYY/MM/`).

Rules worth knowing
-------------------
- A user holds at most one *live* team entry.
- `role_id` must point at a live (not trashed) role. The check and the write
  run under `role_lock` so a concurrent role deletion cannot slip between them.
- Delete is a soft delete and keeps the stored picture.
"""

from contextlib import nullcontext
from typing import Any, Dict, List, Mapping, Optional

from fastapi import Request, status
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.forms import (
    IMAGE_EXTENSIONS,
    ErrorBag,
    fits_bigint,
    has_upload,
    integer_field,
    is_upload,
    parse_int,
    read_payload,
    text_field,
    validate_upload,
)
from app.core.config import settings
from app.core.exceptions import AppException, NotFoundException, ValidationFailed
from app.core.storage import S3_PREFIX_TEAMS, Storage, discard_on_failure, public_url, store_upload
from app.db.models.role import Role
from app.db.models.team import Team
from app.db.models.user import User
from app.dependencies.admin import authorize
from app.schemas.role import RoleOut
from app.schemas.team import TeamOut
from app.schemas.user import UserOut
from app.services.audit_log_service import AuditEvent, log_audit_event
from app.services.content.common import (
    reload,
    role_lock,
    service_errors,
    validate_name_create,
    validate_name_update,
)

BIO_MAX_LENGTH = 1000
TEAM_NOT_FOUND = "Team member not found"
_CONTEXT = "Team profile picture"


async def serialize_team(team: Team, storage: Storage) -> TeamOut:
    return TeamOut(
        id=team.id,
        name=team.name,
        bio=team.bio,
        profile_picture=await public_url(storage, team.profile_picture, context=_CONTEXT),
        created_at=team.created_at,
        updated_at=team.updated_at,
        deleted_at=team.deleted_at,
        user=UserOut.model_validate(team.user) if team.user else None,
        role=RoleOut.model_validate(team.role) if team.role else None,
    )


async def _get_team_or_404(db: AsyncSession, team_id: int) -> Team:
    if not fits_bigint(team_id):
        raise NotFoundException(TEAM_NOT_FOUND)
    stmt = select(Team).where(Team.id == team_id, Team.deleted_at.is_(None))
    team = (await db.execute(stmt)).scalar_one_or_none()
    if team is None:
        raise NotFoundException(TEAM_NOT_FOUND)
    return team


async def _live_role_exists(db: AsyncSession, role_id: int) -> bool:
    stmt = select(Role.id).where(Role.id == role_id, Role.deleted_at.is_(None)).limit(1)
    return (await db.execute(stmt)).first() is not None


def _lock_for(role_id: Optional[int]):
    return role_lock(role_id) if role_id is not None else nullcontext()


async def _user_exists(db: AsyncSession, user_id: int) -> bool:
    return (await db.execute(select(User.id).where(User.id == user_id).limit(1))).first() is not None


async def _user_has_team_entry(db: AsyncSession, user_id: int) -> bool:
    stmt = select(Team.id).where(Team.user_id == user_id, Team.deleted_at.is_(None)).limit(1)
    return (await db.execute(stmt)).first() is not None


# ─────────────────────────────────────────────────────────────
# 📖 Reads
# ─────────────────────────────────────────────────────────────
async def list_teams(db: AsyncSession, storage: Storage) -> List[TeamOut]:
    async with service_errors(db, "Unable to fetch team members"):
        stmt = (
            select(Team)
            .where(Team.deleted_at.is_(None))
            .order_by(Team.created_at.desc(), Team.id.desc())
        )
        teams = (await db.execute(stmt)).scalars().all()
        return [await serialize_team(t, storage) for t in teams]


async def get_team(db: AsyncSession, storage: Storage, team_id: int) -> TeamOut:
    async with service_errors(db, "Unable to fetch team member"):
        return await serialize_team(await _get_team_or_404(db, team_id), storage)


# ─────────────────────────────────────────────────────────────
# ✍️ Create
# ─────────────────────────────────────────────────────────────
async def _validate_create(db: AsyncSession, payload: Mapping[str, Any]) -> Dict[str, Any]:
    raw_picture = payload.get("profile_picture")
    if raw_picture is None or raw_picture == "" or (is_upload(raw_picture) and not has_upload(payload, "profile_picture")):
        raise ValidationFailed.single("profile_picture", "The profile picture is required")

    errors = ErrorBag()
    name = validate_name_create(text_field(payload, "name", errors), errors)

    # role_id
    role_id = integer_field(payload, "role_id")
    if payload.get("role_id") in (None, ""):
        errors.add("role_id", "The role id field is required.")
    elif parse_int(payload.get("role_id")) is None:
        errors.add("role_id", "The role id field must be an integer.")
    elif role_id is None or not await _live_role_exists(db, role_id):
        errors.add("role_id", "The selected role id is invalid.")

    # bio
    bio = (text_field(payload, "bio", errors) or "").strip()
    if not errors.has("bio"):
        if not bio:
            errors.add("bio", "The bio field is required.")
        elif len(bio) > BIO_MAX_LENGTH:
            errors.add("bio", f"The bio field must not be greater than {BIO_MAX_LENGTH} characters.")

    upload = await validate_upload(
        raw_picture,
        field="profile_picture",
        label="profile picture",
        extensions=IMAGE_EXTENSIONS,
        max_kb=settings.TEAM_PICTURE_MAX_KB,
        errors=errors,
        image_only=True,
    )

    # user_id
    user_id = integer_field(payload, "user_id")
    if payload.get("user_id") in (None, ""):
        errors.add("user_id", "The user id field is required.")
    elif user_id is None or not await _user_exists(db, user_id):
        errors.add("user_id", "The selected user id is invalid.")
    elif await _user_has_team_entry(db, user_id):
        errors.add("user_id", "This user already has a team member entry.")

    errors.raise_if_any()
    return {"name": name, "role_id": role_id, "bio": bio, "upload": upload, "user_id": user_id}


async def create_team(db: AsyncSession, storage: Storage, *, user: User, request: Request) -> TeamOut:
    payload = await read_payload(request)

    async with service_errors(db, "Unable to create team member"):
        async with _lock_for(integer_field(payload, "role_id")):
            fields = await _validate_create(db, payload)
            upload = fields["upload"]
            key = await store_upload(storage, S3_PREFIX_TEAMS, upload.extension, upload.data, upload.content_type)
            team = Team(
                name=fields["name"],
                role_id=fields["role_id"],
                bio=fields["bio"],
                profile_picture=key,
                user_id=fields["user_id"],
            )
            db.add(team)
            async with discard_on_failure(storage, key, context=_CONTEXT):
                await db.commit()

        team = await reload(db, Team, team.id)
        await log_audit_event(
            db, user=user, action=AuditEvent.TEAM_CREATE, status="SUCCESS", request=request,
            meta_data={"team_id": team.id, "role_id": team.role_id, "member_user_id": team.user_id},
        )
        logger.info("Team member created | id={} user_id={}", team.id, team.user_id)
        return await serialize_team(team, storage)


# ─────────────────────────────────────────────────────────────
# 🛠️ Update (partial)
# ─────────────────────────────────────────────────────────────
async def _validate_update(db: AsyncSession, payload: Mapping[str, Any]) -> Dict[str, Any]:
    changes: Dict[str, Any] = {}
    errors = ErrorBag()

    if "name" in payload:
        changes["name"] = validate_name_update(text_field(payload, "name", errors), errors)
        errors.raise_if_any()

    if "role_id" in payload:
        raw = payload.get("role_id")
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            raise ValidationFailed.single("role_id", "The role is required")
        role_id = integer_field(payload, "role_id")
        if role_id is None:
            raise ValidationFailed.single("role_id", "The role must be a valid ID")
        if not await _live_role_exists(db, role_id):
            raise ValidationFailed.single("role_id", "The selected role does not exist")
        changes["role_id"] = role_id

    if "bio" in payload:
        bio = (text_field(payload, "bio", errors) or "").strip()
        errors.raise_if_any()
        if not bio:
            raise ValidationFailed.single("bio", "The bio field is required")
        if len(bio) > BIO_MAX_LENGTH:
            raise ValidationFailed.single("bio", "The bio must not exceed 1000 characters")
        changes["bio"] = bio

    if payload.get("profile_picture") not in (None, ""):
        changes["upload"] = await validate_upload(
            payload.get("profile_picture"),
            field="profile_picture",
            label="profile picture",
            extensions=IMAGE_EXTENSIONS,
            max_kb=settings.TEAM_PICTURE_MAX_KB,
            errors=errors,
            image_only=True,
        )
        errors.raise_if_any()

    return changes


async def _apply_update(db: AsyncSession, storage: Storage, team: Team, changes: Dict[str, Any]) -> None:
    upload = changes.pop("upload", None)
    new_key: Optional[str] = None
    if upload is not None:
        new_key = await store_upload(storage, S3_PREFIX_TEAMS, upload.extension, upload.data, upload.content_type)
        team.profile_picture = new_key
    for field, value in changes.items():
        setattr(team, field, value)
    async with discard_on_failure(storage, new_key, context=_CONTEXT):
        await db.commit()


async def update_team(
    db: AsyncSession,
    storage: Storage,
    *,
    team_id: int,
    user: User,
    request: Request,
) -> TeamOut:
    team = await _get_team_or_404(db, team_id)
    authorize(user, "update", "team")
    payload = await read_payload(request)

    async with service_errors(db, "Unable to update team member"):
        role_id = integer_field(payload, "role_id") if "role_id" in payload else None
        async with _lock_for(role_id):
            changes = await _validate_update(db, payload)
            if not changes:
                raise AppException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    message="No valid data provided for update",
                )
            fields = sorted("profile_picture" if k == "upload" else k for k in changes)
            await _apply_update(db, storage, team, changes)

        team = await reload(db, Team, team_id)
        await log_audit_event(
            db, user=user, action=AuditEvent.TEAM_UPDATE, status="SUCCESS", request=request,
            meta_data={"team_id": team.id, "fields": fields},
        )
        return await serialize_team(team, storage)


# ─────────────────────────────────────────────────────────────
# 🗑️ Delete (soft)
# ─────────────────────────────────────────────────────────────
async def delete_team(
    db: AsyncSession,
    *,
    team_id: int,
    user: User,
    request: Request,
) -> None:
    team = await _get_team_or_404(db, team_id)
    authorize(user, "delete", "team")

    async with service_errors(db, "Unable to delete team member"):
        team.soft_delete()
        await db.commit()
        await log_audit_event(
            db, user=user, action=AuditEvent.TEAM_DELETE, status="SUCCESS", request=request,
            meta_data={"team_id": team_id},
        )
        logger.info("Team member deleted | id={}", team_id)


__all__ = ["serialize_team", "list_teams", "get_team", "create_team", "update_team", "delete_team"]
