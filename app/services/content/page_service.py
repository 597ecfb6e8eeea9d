from __future__ import annotations

"""
Page service
============

Pages are titled rich-text entries with a banner (image or video) in object
storage, addressed publicly by slug.

Visibility
----------
- Admins see every page.
- Anonymous and non-admin callers only see *published* pages:
  `published_at IS NOT NULL AND published_at <= now`.

Writes
------
- Create validates the whole form at once and reports every field error.
- Update is partial: each sent field is checked on its own and the first
  problem is reported, matching the update wording of the API.
- Delete removes the banner object best-effort, then the row (hard delete).
"""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from fastapi import Request, status
from loguru import logger
from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.forms import (
    MEDIA_EXTENSIONS,
    ErrorBag,
    fits_bigint,
    has_upload,
    is_upload,
    parse_datetime_lenient,
    parse_published_at_strict,
    read_payload,
    text_field,
    validate_upload,
)
from app.core.config import settings
from app.core.exceptions import AppException, NotFoundException, ValidationFailed
from app.core.storage import S3_PREFIX_PAGES, Storage, delete_object, discard_on_failure, store_upload
from app.db.base_class import utcnow
from app.db.models.page import Page
from app.db.models.user import User
from app.dependencies.admin import authorize, is_admin
from app.schemas.enums import MediaKind
from app.schemas.page import PageOut
from app.schemas.user import UserOut
from app.services.audit_log_service import AuditEvent, log_audit_event
from app.services.content.common import reload, service_errors
from app.utils.text import has_control_chars, is_valid_name, slugify

TITLE_MAX_LENGTH = 255

PAGE_NOT_FOUND = "Page not found"
TITLE_TAKEN = "A page with this title already exists."
INVALID_CONTENT = "Content contains invalid characters or binary data"


# ─────────────────────────────────────────────────────────────
# 🔧 Helpers
# ─────────────────────────────────────────────────────────────
def serialize_page(page: Page, storage: Storage) -> PageOut:
    """Render a page with its banner as a public URL and the author embedded."""
    return PageOut(
        id=page.id,
        title=page.title,
        slug=page.slug,
        banner_type=page.banner_type,
        banner_path=storage.url(page.banner_path) if page.banner_path else None,
        content=page.content,
        published_at=page.published_at,
        created_at=page.created_at,
        updated_at=page.updated_at,
        user=UserOut.model_validate(page.user) if page.user else None,
    )


def _published_clause():
    return and_(Page.published_at.is_not(None), Page.published_at <= utcnow())


def _content_is_clean(value: str) -> bool:
    # U+FFFD is what the form decoder leaves behind for invalid UTF-8 bytes
    return "\ufffd" not in value and not has_control_chars(value)


async def _slug_taken(db: AsyncSession, slug: str, *, exclude_id: Optional[int] = None) -> bool:
    stmt = select(Page.id).where(Page.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(Page.id != exclude_id)
    return (await db.execute(stmt.limit(1))).first() is not None


async def _get_page_or_404(db: AsyncSession, page_id: int) -> Page:
    if not fits_bigint(page_id):
        raise NotFoundException(PAGE_NOT_FOUND)
    page = (await db.execute(select(Page).where(Page.id == page_id))).scalar_one_or_none()
    if page is None:
        raise NotFoundException(PAGE_NOT_FOUND)
    return page


# ─────────────────────────────────────────────────────────────
# 📖 Reads
# ─────────────────────────────────────────────────────────────
async def list_pages(db: AsyncSession, storage: Storage, user: Optional[User]) -> List[PageOut]:
    async with service_errors(db, "Unable to fetch pages"):
        stmt = select(Page).order_by(Page.created_at.desc(), Page.id.desc())
        if not is_admin(user):
            stmt = stmt.where(_published_clause())
        pages = (await db.execute(stmt)).scalars().all()
        return [serialize_page(p, storage) for p in pages]


async def get_page_by_slug(db: AsyncSession, storage: Storage, slug: str, user: Optional[User]) -> PageOut:
    async with service_errors(db, "Unable to fetch page"):
        stmt = select(Page).where(Page.slug == slug)
        if not is_admin(user):
            stmt = stmt.where(_published_clause())
        page = (await db.execute(stmt)).scalar_one_or_none()
        if page is None:
            raise NotFoundException(PAGE_NOT_FOUND)
        return serialize_page(page, storage)


# ─────────────────────────────────────────────────────────────
# ✍️ Create
# ─────────────────────────────────────────────────────────────
async def _validate_create(db: AsyncSession, payload: Mapping[str, Any]):
    raw_banner = payload.get("banner")
    if raw_banner is None or raw_banner == "" or (is_upload(raw_banner) and not has_upload(payload, "banner")):
        raise ValidationFailed.single("banner", "The banner file is required")

    errors = ErrorBag()

    # title
    title = (text_field(payload, "title", errors) or "").strip()
    slug = ""
    if not title:
        if not errors.has("title"):
            errors.add("title", "The title field is required.")
    else:
        if len(title) > TITLE_MAX_LENGTH:
            errors.add("title", f"The title field must not be greater than {TITLE_MAX_LENGTH} characters.")
        if not is_valid_name(title):
            errors.add("title", "The title contains invalid characters.")
        slug = slugify(title)
        if slug and await _slug_taken(db, slug):
            errors.add("title", TITLE_TAKEN)
        if not slug:
            errors.add("title", "The title must contain at least one alphanumeric character.")

    # content
    content = text_field(payload, "content", errors)
    if not errors.has("content"):
        if content is None or not content.strip():
            errors.add("content", "The content field is required.")
        elif not _content_is_clean(content):
            errors.add("content", INVALID_CONTENT)

    # banner
    upload = await validate_upload(
        payload.get("banner"),
        field="banner",
        label="banner",
        extensions=MEDIA_EXTENSIONS,
        max_kb=settings.PAGE_BANNER_MAX_KB,
        errors=errors,
    )

    # published_at
    published_at: Optional[datetime] = None
    raw_published = text_field(payload, "published_at", errors, label="published at")
    if raw_published:
        published_at = parse_published_at_strict(raw_published.strip())
        if published_at is None:
            errors.add("published_at", "The published at field must match the format Y-m-d\\TH:i:s\\Z.")

    errors.raise_if_any()
    return title, slug, content, upload, published_at


async def create_page(
    db: AsyncSession,
    storage: Storage,
    *,
    user: User,
    request: Request,
) -> PageOut:
    payload = await read_payload(request)

    async with service_errors(db, "Unable to create page"):
        title, slug, content, upload, published_at = await _validate_create(db, payload)

        key = await store_upload(storage, S3_PREFIX_PAGES, upload.extension, upload.data, upload.content_type)
        page = Page(
            title=title,
            slug=slug,
            banner_type=MediaKind.from_mime(upload.content_type).value,
            banner_path=key,
            content=content,
            user_id=user.id,
            published_at=published_at,
        )
        db.add(page)
        async with discard_on_failure(storage, key, context="Page banner"):
            try:
                await db.commit()
            except IntegrityError:
                # Slug claimed by a concurrent request between check and insert
                await db.rollback()
                raise ValidationFailed.single("title", TITLE_TAKEN)

        page = await reload(db, Page, page.id)
        await log_audit_event(
            db, user=user, action=AuditEvent.PAGE_CREATE, status="SUCCESS", request=request,
            meta_data={"page_id": page.id, "slug": page.slug},
        )
        logger.info("Page created | id={} slug={}", page.id, page.slug)
        return serialize_page(page, storage)


# ─────────────────────────────────────────────────────────────
# 🛠️ Update (partial)
# ─────────────────────────────────────────────────────────────
async def _validate_update(db: AsyncSession, page: Page, payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Collect the changes to apply; raises on the first invalid field."""
    changes: Dict[str, Any] = {}
    errors = ErrorBag()

    if "title" in payload:
        title = (text_field(payload, "title", errors) or "").strip()
        errors.raise_if_any()
        if title:
            if len(title) > TITLE_MAX_LENGTH:
                raise ValidationFailed.single("title", "The title must not exceed 255 characters")
            if not is_valid_name(title):
                raise ValidationFailed.single("title", "The title contains invalid characters")
            slug = slugify(title)
            if not slug:
                raise ValidationFailed.single("title", "The title must contain at least one alphanumeric character")
            if await _slug_taken(db, slug, exclude_id=page.id):
                raise ValidationFailed.single("title", TITLE_TAKEN)
            changes["title"] = title
            changes["slug"] = slug

    if "content" in payload:
        if is_upload(payload.get("content")):
            raise ValidationFailed.single("content", "Content field cannot be a file")
        content = text_field(payload, "content", errors)
        errors.raise_if_any()
        if content and content.strip():
            if not _content_is_clean(content):
                raise ValidationFailed.single("content", INVALID_CONTENT)
            changes["content"] = content

    if payload.get("banner") not in (None, ""):
        upload = await validate_upload(
            payload.get("banner"),
            field="banner",
            label="banner",
            extensions=MEDIA_EXTENSIONS,
            max_kb=settings.PAGE_BANNER_MAX_KB,
            errors=errors,
        )
        errors.raise_if_any()
        changes["banner"] = upload

    if "published_at" in payload:
        raw_published = text_field(payload, "published_at", errors)
        errors.raise_if_any()
        if raw_published and raw_published.strip():
            parsed = parse_datetime_lenient(raw_published)
            if parsed is None:
                raise ValidationFailed.single("published_at", "Invalid date format")
            changes["published_at"] = parsed
        else:
            changes["published_at"] = None

    return changes


async def update_page(
    db: AsyncSession,
    storage: Storage,
    *,
    page_id: int,
    user: User,
    request: Request,
) -> PageOut:
    page = await _get_page_or_404(db, page_id)
    authorize(user, "update", "page")
    payload = await read_payload(request)

    async with service_errors(db, "Unable to update page"):
        changes = await _validate_update(db, page, payload)
        if not changes:
            raise AppException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, message="No data provided for update")

        old_key: Optional[str] = None
        new_key: Optional[str] = None
        upload = changes.pop("banner", None)
        if upload is not None:
            old_key = page.banner_path
            new_key = await store_upload(storage, S3_PREFIX_PAGES, upload.extension, upload.data, upload.content_type)
            page.banner_path = new_key
            page.banner_type = MediaKind.from_mime(upload.content_type).value
        for field, value in changes.items():
            setattr(page, field, value)

        async with discard_on_failure(storage, new_key, context="Page banner"):
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                raise ValidationFailed.single("title", TITLE_TAKEN)

        if old_key and old_key != new_key:
            await delete_object(storage, old_key, context="Page banner")

        page = await reload(db, Page, page_id)
        await log_audit_event(
            db, user=user, action=AuditEvent.PAGE_UPDATE, status="SUCCESS", request=request,
            meta_data={"page_id": page.id, "fields": sorted(changes) + (["banner"] if new_key else [])},
        )
        return serialize_page(page, storage)


# ─────────────────────────────────────────────────────────────
# 🗑️ Delete (hard)
# ─────────────────────────────────────────────────────────────
async def delete_page(
    db: AsyncSession,
    storage: Storage,
    *,
    page_id: int,
    user: User,
    request: Request,
) -> None:
    page = await _get_page_or_404(db, page_id)
    authorize(user, "delete", "page")

    async with service_errors(db, "Unable to delete page"):
        await delete_object(storage, page.banner_path, context="Page banner")
        await db.delete(page)
        await db.commit()
        await log_audit_event(
            db, user=user, action=AuditEvent.PAGE_DELETE, status="SUCCESS", request=request,
            meta_data={"page_id": page_id},
        )
        logger.info("Page deleted | id={}", page_id)


__all__ = [
    "serialize_page",
    "list_pages",
    "get_page_by_slug",
    "create_page",
    "update_page",
    "delete_page",
]
