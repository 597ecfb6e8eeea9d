# tests/fixtures/app.py

"""
🧩 App Fixture:
- Builds a test FastAPI app with the production routers and handlers
- Injects the test DB session and an in-memory object store
- Returns an HTTP client fixture for integration tests
"""

from typing import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.routers import router as api_router
from app.core.config import settings
from app.core.exception_handlers import register_exception_handlers
from app.core.limiter import install_rate_limiter
from app.core.storage import get_storage
from app.db.session import get_async_db
from app.middleware.request_id import RequestIDMiddleware
from tests.fixtures.db import get_override_get_db
from tests.fixtures.mocks.storage import InMemoryStorage


@pytest.fixture()
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture()
async def app(db_session: AsyncSession, storage: InMemoryStorage) -> FastAPI:
    """
    🧪 FastAPI app wired like production, minus lifespan and security headers.
    """
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)
    install_rate_limiter(app)
    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_PREFIX)

    # 🔁 Isolated DB session + in-memory storage
    app.dependency_overrides[get_async_db] = get_override_get_db(db_session)
    app.dependency_overrides[get_storage] = lambda: storage

    return app


@pytest.fixture()
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """🌐 HTTP client for sending requests to the test app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
