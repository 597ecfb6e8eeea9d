"""Versioned API aggregator.

The combined router lives in `app.api.v1.routers.router` and is mounted by
`app.main` under `settings.API_PREFIX` (`/api`). Import it from the
routers subpackage to avoid name shadowing with the package name:

    from app.api.v1.routers import router as api_router
"""

__all__ = []
