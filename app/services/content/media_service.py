from __future__ import annotations

"""
Media service
=============

Media library items: an uploaded image or video plus its display name.
Rows remember the MIME type and byte size captured at upload; the file
itself lives under `media/YYYY/MM/` in object storage.

- `file_path` is rendered as a public URL only when the object still exists
  (see `app.core.storage.public_url`).
- Delete removes the object best-effort and soft-deletes the row.
"""

from typing import List, Optional

from fastapi import Request, status
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.forms import (
    MEDIA_EXTENSIONS,
    ErrorBag,
    fits_bigint,
    has_upload,
    is_upload,
    read_payload,
    text_field,
    validate_upload,
)
from app.core.config import settings
from app.core.exceptions import AppException, NotFoundException, ValidationFailed
from app.core.storage import S3_PREFIX_MEDIA, Storage, delete_object, discard_on_failure, public_url, store_upload
from app.db.models.media import Media
from app.db.models.user import User
from app.dependencies.admin import authorize
from app.schemas.enums import MediaKind
from app.schemas.media import MediaOut
from app.schemas.user import UserOut
from app.services.audit_log_service import AuditEvent, log_audit_event
from app.services.content.common import reload, service_errors, validate_name_create, validate_name_update

MEDIA_NOT_FOUND = "Media not found"
_CONTEXT = "Media"


async def serialize_media(media: Media, storage: Storage) -> MediaOut:
    return MediaOut(
        id=media.id,
        name=media.name,
        type=media.type,
        file_path=await public_url(storage, media.file_path, context=_CONTEXT),
        mime_type=media.mime_type,
        size=media.size,
        created_at=media.created_at,
        updated_at=media.updated_at,
        deleted_at=media.deleted_at,
        user=UserOut.model_validate(media.user) if media.user else None,
    )


async def _get_media_or_404(db: AsyncSession, media_id: int) -> Media:
    if not fits_bigint(media_id):
        raise NotFoundException(MEDIA_NOT_FOUND)
    stmt = select(Media).where(Media.id == media_id, Media.deleted_at.is_(None))
    media = (await db.execute(stmt)).scalar_one_or_none()
    if media is None:
        raise NotFoundException(MEDIA_NOT_FOUND)
    return media


async def list_media(db: AsyncSession, storage: Storage) -> List[MediaOut]:
    async with service_errors(db, "Unable to fetch media"):
        stmt = (
            select(Media)
            .where(Media.deleted_at.is_(None))
            .order_by(Media.created_at.desc(), Media.id.desc())
        )
        items = (await db.execute(stmt)).scalars().all()
        return [await serialize_media(m, storage) for m in items]


async def get_media(db: AsyncSession, storage: Storage, media_id: int) -> MediaOut:
    async with service_errors(db, "Unable to fetch media"):
        return await serialize_media(await _get_media_or_404(db, media_id), storage)


async def create_media(db: AsyncSession, storage: Storage, *, user: User, request: Request) -> MediaOut:
    """Upload a file and register it in the library. Callers apply the create policy first."""
    payload = await read_payload(request)

    async with service_errors(db, "Unable to upload media"):
        raw_file = payload.get("file")
        if raw_file is None or raw_file == "" or (is_upload(raw_file) and not has_upload(payload, "file")):
            raise ValidationFailed.single("file", "The file is required")

        errors = ErrorBag()
        name = validate_name_create(text_field(payload, "name", errors), errors)
        upload = await validate_upload(
            raw_file,
            field="file",
            label="file",
            extensions=MEDIA_EXTENSIONS,
            max_kb=settings.MEDIA_FILE_MAX_KB,
            errors=errors,
        )
        errors.raise_if_any()

        key = await store_upload(storage, S3_PREFIX_MEDIA, upload.extension, upload.data, upload.content_type)
        media = Media(
            name=name,
            type=MediaKind.from_mime(upload.content_type).value,
            file_path=key,
            mime_type=upload.content_type,
            size=upload.size,
            user_id=user.id,
        )
        db.add(media)
        async with discard_on_failure(storage, key, context=_CONTEXT):
            await db.commit()

        media = await reload(db, Media, media.id)
        await log_audit_event(
            db, user=user, action=AuditEvent.MEDIA_CREATE, status="SUCCESS", request=request,
            meta_data={"media_id": media.id, "type": media.type, "size": media.size},
        )
        logger.info("Media uploaded | id={} type={} size={}", media.id, media.type, media.size)
        return await serialize_media(media, storage)


async def update_media(
    db: AsyncSession,
    storage: Storage,
    *,
    media_id: int,
    user: User,
    request: Request,
) -> MediaOut:
    media = await _get_media_or_404(db, media_id)
    authorize(user, "update", "media")
    payload = await read_payload(request)

    async with service_errors(db, "Unable to update media"):
        errors = ErrorBag()
        name: Optional[str] = None
        upload = None

        if "name" in payload:
            name = validate_name_update(text_field(payload, "name", errors), errors)
            errors.raise_if_any()

        if payload.get("file") not in (None, ""):
            upload = await validate_upload(
                payload.get("file"),
                field="file",
                label="file",
                extensions=MEDIA_EXTENSIONS,
                max_kb=settings.MEDIA_FILE_MAX_KB,
                errors=errors,
            )
            errors.raise_if_any()

        if name is None and upload is None:
            raise AppException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, message="No data provided for update")

        old_key: Optional[str] = None
        new_key: Optional[str] = None
        if name is not None:
            media.name = name
        if upload is not None:
            old_key = media.file_path
            new_key = await store_upload(storage, S3_PREFIX_MEDIA, upload.extension, upload.data, upload.content_type)
            media.file_path = new_key
            media.type = MediaKind.from_mime(upload.content_type).value
            media.mime_type = upload.content_type
            media.size = upload.size

        async with discard_on_failure(storage, new_key, context=_CONTEXT):
            await db.commit()
        if old_key:
            await delete_object(storage, old_key, context=_CONTEXT)

        media = await reload(db, Media, media_id)
        await log_audit_event(
            db, user=user, action=AuditEvent.MEDIA_UPDATE, status="SUCCESS", request=request,
            meta_data={"media_id": media.id, "file_replaced": upload is not None},
        )
        return await serialize_media(media, storage)


async def delete_media(
    db: AsyncSession,
    storage: Storage,
    *,
    media_id: int,
    user: User,
    request: Request,
) -> None:
    media = await _get_media_or_404(db, media_id)
    authorize(user, "delete", "media")

    async with service_errors(db, "Unable to delete media"):
        await delete_object(storage, media.file_path, context=_CONTEXT)
        media.soft_delete()
        await db.commit()
        await log_audit_event(
            db, user=user, action=AuditEvent.MEDIA_DELETE, status="SUCCESS", request=request,
            meta_data={"media_id": media_id},
        )
        logger.info("Media deleted | id={}", media_id)


__all__ = ["serialize_media", "list_media", "get_media", "create_media", "update_media", "delete_media"]
