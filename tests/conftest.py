# tests/conftest.py
"""
Global test bootstrap
- Points the app at in-memory SQLite and a fixed JWT secret
- Mounts a mock Redis client into app.core.redis_client
- Makes SlowAPI rate-limiting test-friendly (bypass by default)
- Exposes a redis_client fixture + an opt-in ratelimit_on fixture
"""

from __future__ import annotations

import os
import random

import pytest

# ──────────────────────────────────────────────────────────────────────────────
# 🌱 Test env (set BEFORE importing the app so settings pick it up)
# ──────────────────────────────────────────────────────────────────────────────
os.environ.setdefault("ENV", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-pytest-only-0123456789")
os.environ.setdefault("DATABASE_URI", "sqlite+aiosqlite://")
os.environ.setdefault("LOG_TO_FILE", "0")
os.environ.setdefault("RATELIMIT_STORAGE_URI", "memory://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("RATE_LIMIT_TEST_BYPASS", "1")
os.environ.setdefault("RATE_LIMIT_NAMESPACE", f"pytest-{random.getrandbits(32)}")

# ──────────────────────────────────────────────────────────────────────────────
# 🧪 Install mock Redis globally before any tests run
# ──────────────────────────────────────────────────────────────────────────────
from app.core.redis_client import redis_wrapper
from tests.fixtures.mocks.redis import MockRedisClient

redis_wrapper._client = MockRedisClient()

# ──────────────────────────────────────────────────────────────────────────────
# 📦 Pull in the rest of the fixtures (db, app, auth, users)
# ──────────────────────────────────────────────────────────────────────────────
from tests.fixtures.db import *     # noqa: F401,F403,E402
from tests.fixtures.app import *    # noqa: F401,F403,E402
from tests.fixtures.auth import *   # noqa: F401,F403,E402
from tests.fixtures.users import *  # noqa: F401,F403,E402


# ──────────────────────────────────────────────────────────────────────────────
# 🔌 Redis fixture (function-scoped), cleared around each test that uses it
# ──────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
async def redis_client():
    """Use this to inspect or seed Redis directly in a test."""
    client = redis_wrapper.client
    await client.flushall()
    yield client
    await client.flushall()


# ──────────────────────────────────────────────────────────────────────────────
# 🚦 Opt-in fixture to actually enforce rate limits in a specific test
#    The limiter reads RATE_LIMIT_TEST_BYPASS per request, so no reload needed.
# ──────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def ratelimit_on(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_TEST_BYPASS", "0")
    yield
