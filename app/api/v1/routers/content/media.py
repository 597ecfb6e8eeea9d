"""
Media API
=========

GET    /media               list live media
GET    /media/{media_id}    single item (404 when trashed)
POST   /media               upload (admin, multipart; Idempotency-Key supported)
PUT    /media/{media_id}    rename and/or replace the file (admin); PATCH too
DELETE /media/{media_id}    soft delete + storage cleanup (admin)
"""

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.http_utils import idempotency_remember, idempotency_replay, json_no_store, json_success
from app.core.limiter import rate_limit
from app.core.security import get_current_user
from app.core.storage import Storage, get_storage
from app.db.models.user import User
from app.db.session import get_async_db
from app.dependencies.admin import authorize
from app.services.content import media_service

router = APIRouter(tags=["Media"])


@router.get("/media", summary="List media")
@rate_limit("60/minute")
async def list_media(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    storage: Storage = Depends(get_storage),
) -> JSONResponse:
    items = await media_service.list_media(db, storage)
    return json_success(items, "Media list retrieved successfully")


@router.get("/media/{media_id}", summary="Get a media item")
@rate_limit("60/minute")
async def show_media(
    media_id: int,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    storage: Storage = Depends(get_storage),
) -> JSONResponse:
    item = await media_service.get_media(db, storage, media_id)
    return json_success(item, "Media retrieved successfully")


@router.post("/media", status_code=status.HTTP_201_CREATED, summary="Upload media (Idempotency-Key supported)")
@rate_limit("10/minute")
async def upload_media(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    authorize(current_user, "create", "media")

    replay = await idempotency_replay(request, "media:create")
    if replay is not None:
        return replay

    item = await media_service.create_media(db, storage, user=current_user, request=request)
    result = json_no_store(item, "Media uploaded successfully", status.HTTP_201_CREATED)
    await idempotency_remember(request, "media:create", result)
    return result


@router.put("/media/{media_id}", summary="Update media (partial)", operation_id="update_media")
@router.patch("/media/{media_id}", summary="Update media (partial)", operation_id="patch_media")
@rate_limit("30/minute")
async def update_media(
    media_id: int,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    item = await media_service.update_media(db, storage, media_id=media_id, user=current_user, request=request)
    return json_no_store(item, "Media updated successfully")


@router.delete("/media/{media_id}", summary="Delete media")
@rate_limit("30/minute")
async def delete_media(
    media_id: int,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    await media_service.delete_media(db, storage, media_id=media_id, user=current_user, request=request)
    return json_no_store(message="Media deleted successfully", include_data=False)


__all__ = ["router"]
