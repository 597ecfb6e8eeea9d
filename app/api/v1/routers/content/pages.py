"""
Pages API
=========

GET    /pages               list (admins: all; others: published only)
GET    /pages/{slug}        single page by slug
POST   /pages               create (admin, multipart; Idempotency-Key supported)
PUT    /pages/{page_id}     partial update (admin, multipart); PATCH is accepted too
DELETE /pages/{page_id}     hard delete (admin)

Practices: SlowAPI rate limits, policy checks before validation on create,
Redis idempotency for create, sensitive cache headers on admin writes, and
audit logs (in the service layer).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.http_utils import idempotency_remember, idempotency_replay, json_no_store, json_success, sanitize_slug
from app.core.limiter import rate_limit
from app.core.security import get_current_user, get_optional_user
from app.core.storage import Storage, get_storage
from app.db.models.user import User
from app.db.session import get_async_db
from app.dependencies.admin import authorize
from app.services.content import page_service

router = APIRouter(tags=["Pages"])


@router.get("/pages", summary="List pages")
@rate_limit("60/minute")
async def list_pages(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    storage: Storage = Depends(get_storage),
    current_user: Optional[User] = Depends(get_optional_user),
) -> JSONResponse:
    pages = await page_service.list_pages(db, storage, current_user)
    return json_success(pages, "Pages retrieved successfully")


@router.get("/pages/{slug}", summary="Get a page by slug")
@rate_limit("60/minute")
async def show_page(
    slug: str,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    storage: Storage = Depends(get_storage),
    current_user: Optional[User] = Depends(get_optional_user),
) -> JSONResponse:
    page = await page_service.get_page_by_slug(db, storage, sanitize_slug(slug), current_user)
    return json_success(page, "Page retrieved successfully")


@router.post("/pages", status_code=status.HTTP_201_CREATED, summary="Create page (Idempotency-Key supported)")
@rate_limit("10/minute")
async def create_page(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    # [Step 0] Policy before any validation
    authorize(current_user, "create", "page")

    # [Step 1] Replay a previous response for the same Idempotency-Key
    replay = await idempotency_replay(request, "pages:create")
    if replay is not None:
        return replay

    # [Step 2] Validate, store banner, persist
    page = await page_service.create_page(db, storage, user=current_user, request=request)
    result = json_no_store(page, "Page created successfully", status.HTTP_201_CREATED)
    await idempotency_remember(request, "pages:create", result)
    return result


@router.put("/pages/{page_id}", summary="Update page (partial)", operation_id="update_page")
@router.patch("/pages/{page_id}", summary="Update page (partial)", operation_id="patch_page")
@rate_limit("30/minute")
async def update_page(
    page_id: int,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    page = await page_service.update_page(db, storage, page_id=page_id, user=current_user, request=request)
    return json_no_store(page, "Page updated successfully")


@router.delete("/pages/{page_id}", summary="Delete page")
@rate_limit("30/minute")
async def delete_page(
    page_id: int,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    await page_service.delete_page(db, storage, page_id=page_id, user=current_user, request=request)
    return json_no_store(message="Page deleted successfully", include_data=False)


__all__ = ["router"]
