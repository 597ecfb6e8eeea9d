"""
Teams API
=========

GET    /teams               list live team members (user + role embedded)
GET    /teams/{team_id}     single member
POST   /teams               create (admin, multipart; Idempotency-Key supported)
PUT    /teams/{team_id}     partial update (admin, multipart); PATCH too
DELETE /teams/{team_id}     soft delete (admin); the picture is kept
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
from app.services.content import team_service

router = APIRouter(tags=["Teams"])


@router.get("/teams", summary="List team members")
@rate_limit("60/minute")
async def list_teams(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    storage: Storage = Depends(get_storage),
) -> JSONResponse:
    teams = await team_service.list_teams(db, storage)
    return json_success(teams, "Team members retrieved successfully")


@router.get("/teams/{team_id}", summary="Get a team member")
@rate_limit("60/minute")
async def show_team(
    team_id: int,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    storage: Storage = Depends(get_storage),
) -> JSONResponse:
    team = await team_service.get_team(db, storage, team_id)
    return json_success(team, "Team member retrieved successfully")


@router.post("/teams", status_code=status.HTTP_201_CREATED, summary="Create team member (Idempotency-Key supported)")
@rate_limit("10/minute")
async def create_team(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    authorize(current_user, "create", "team")

    replay = await idempotency_replay(request, "teams:create")
    if replay is not None:
        return replay

    team = await team_service.create_team(db, storage, user=current_user, request=request)
    result = json_no_store(team, "Team member created successfully", status.HTTP_201_CREATED)
    await idempotency_remember(request, "teams:create", result)
    return result


@router.put("/teams/{team_id}", summary="Update team member (partial)", operation_id="update_team")
@router.patch("/teams/{team_id}", summary="Update team member (partial)", operation_id="patch_team")
@rate_limit("30/minute")
async def update_team(
    team_id: int,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    team = await team_service.update_team(db, storage, team_id=team_id, user=current_user, request=request)
    return json_no_store(team, "Team member updated successfully")


@router.delete("/teams/{team_id}", summary="Delete team member")
@rate_limit("30/minute")
async def delete_team(
    team_id: int,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> JSONResponse:
    await team_service.delete_team(db, team_id=team_id, user=current_user, request=request)
    return json_no_store(message="Team member deleted successfully", include_data=False)


__all__ = ["router"]
