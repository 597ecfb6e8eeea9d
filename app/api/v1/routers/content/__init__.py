"""
Content routers (pages, media, teams, roles).

Reads are public; writes authenticate with a bearer token and are gated
by the admin policy in `app.dependencies.admin`.
"""

from fastapi import APIRouter, status

from app.schemas.common import ErrorEnvelope

from .media import router as media_router
from .pages import router as pages_router
from .roles import router as roles_router
from .teams import router as teams_router

COMMON_CONTENT_RESPONSES = {
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorEnvelope, "description": "Unauthenticated"},
    status.HTTP_403_FORBIDDEN: {"model": ErrorEnvelope, "description": "Forbidden by policy"},
    status.HTTP_404_NOT_FOUND: {"model": ErrorEnvelope, "description": "Not found"},
    status.HTTP_422_UNPROCESSABLE_ENTITY: {"model": ErrorEnvelope, "description": "Invalid input data"},
    status.HTTP_429_TOO_MANY_REQUESTS: {"model": ErrorEnvelope, "description": "Rate limit exceeded"},
}

router = APIRouter()
for _sub in (pages_router, media_router, teams_router, roles_router):
    router.include_router(_sub, responses=COMMON_CONTENT_RESPONSES)


__all__ = ["router", "pages_router", "media_router", "teams_router", "roles_router"]
