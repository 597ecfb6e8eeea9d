"""
Roles API
=========

GET    /roles               list live roles
GET    /roles/{role_id}     single role
POST   /roles               create (admin, JSON or form; Idempotency-Key supported)
PUT    /roles/{role_id}     partial update (admin); PATCH too
DELETE /roles/{role_id}     soft delete (admin); refused while team members use it
"""

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.http_utils import idempotency_remember, idempotency_replay, json_no_store, json_success
from app.core.limiter import rate_limit
from app.core.security import get_current_user
from app.db.models.user import User
from app.db.session import get_async_db
from app.dependencies.admin import authorize
from app.services.content import role_service

router = APIRouter(tags=["Roles"])


@router.get("/roles", summary="List roles")
@rate_limit("60/minute")
async def list_roles(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
) -> JSONResponse:
    return json_success(await role_service.list_roles(db), "Roles retrieved successfully")


@router.get("/roles/{role_id}", summary="Get a role")
@rate_limit("60/minute")
async def show_role(
    role_id: int,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
) -> JSONResponse:
    return json_success(await role_service.get_role(db, role_id), "Role retrieved successfully")


@router.post("/roles", status_code=status.HTTP_201_CREATED, summary="Create role (Idempotency-Key supported)")
@rate_limit("10/minute")
async def create_role(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    authorize(current_user, "create", "role")

    replay = await idempotency_replay(request, "roles:create")
    if replay is not None:
        return replay

    role = await role_service.create_role(db, user=current_user, request=request)
    result = json_no_store(role, "Role created successfully", status.HTTP_201_CREATED)
    await idempotency_remember(request, "roles:create", result)
    return result


@router.put("/roles/{role_id}", summary="Update role (partial)", operation_id="update_role")
@router.patch("/roles/{role_id}", summary="Update role (partial)", operation_id="patch_role")
@rate_limit("30/minute")
async def update_role(
    role_id: int,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    role = await role_service.update_role(db, role_id=role_id, user=current_user, request=request)
    return json_no_store(role, "Role updated successfully")


@router.delete("/roles/{role_id}", summary="Delete role")
@rate_limit("30/minute")
async def delete_role(
    role_id: int,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    await role_service.delete_role(db, role_id=role_id, user=current_user, request=request)
    return json_no_store(message="Role deleted successfully", include_data=False)


__all__ = ["router"]
