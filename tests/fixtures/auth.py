# tests/fixtures/auth.py
"""
🔐 Token + auth header fixtures.
"""

from typing import Awaitable, Callable, Dict

import pytest

from app.core.security import create_access_token
from app.db.models.user import User


@pytest.fixture()
def auth_headers() -> Callable[[User], Awaitable[Dict[str, str]]]:
    """Usage: `headers = await auth_headers(user)`."""
    async def _headers(user: User) -> Dict[str, str]:
        token = await create_access_token(user.id)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture()
async def admin_headers(admin_user: User, auth_headers) -> Dict[str, str]:
    return await auth_headers(admin_user)


@pytest.fixture()
async def user_headers(normal_user: User, auth_headers) -> Dict[str, str]:
    return await auth_headers(normal_user)
