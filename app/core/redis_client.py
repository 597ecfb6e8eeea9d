# app/core/redis_client.py
from __future__ import annotations

"""
CMS Backend — Redis Client (Async)
==================================
Central, **single source of truth** for Redis access in the app.

What this provides
------------------
• Connection manager with retries & backoff
• Pooled async client with health checks
• **Idempotency** snapshots (JSON set/get)
• Generic JSON set/get helpers
• Async **distributed lock** (native lock preferred; `SETNX` fallback)

Public API (imported as `redis_wrapper`)
----------------------------------------
- await redis_wrapper.connect() / await redis_wrapper.close() / await redis_wrapper.is_connected()
- redis_wrapper.client
- await redis_wrapper.idempotency_set(key, value, ttl_seconds=600)
- await redis_wrapper.idempotency_get(key)
- await redis_wrapper.json_set(key, value, ttl_seconds=None)
- await redis_wrapper.json_get(key, default=None)
- async with redis_wrapper.lock(name, timeout=10, blocking_timeout=3): ...

Design notes
------------
• Token revocation lanes (`access:jti:*`, `revoked:jti:*`) use the raw client.
• **Strict** on locks: raise `TimeoutError` if not acquired within `blocking_timeout`.
• Compatible with test mocks that only implement a subset of commands.
"""

import asyncio
import inspect
import json
import logging
import os
import random
import uuid
from contextlib import asynccontextmanager
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.core.config import settings

logger = logging.getLogger("app.redis")

MAX_RETRIES = int(os.getenv("REDIS_CONNECT_MAX_RETRIES", "5"))
BASE_DELAY = float(os.getenv("REDIS_CONNECT_BASE_DELAY", "0.3"))  # seconds
HEALTH_CHECK_INTERVAL = int(os.getenv("REDIS_HEALTH_CHECK_INTERVAL", "30"))
SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", "3"))
POOL_MAX_CONNECTIONS = int(os.getenv("REDIS_POOL_MAX_CONNECTIONS", "64"))
CLIENT_NAME = os.getenv("REDIS_CLIENT_NAME", "cms-api")


class RedisClient:
    """Singleton Redis connection manager (asyncio)."""

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self._client: Optional[Any] = None

    # ── lifecycle ────────────────────────────────────────────────────────────
    async def connect(self) -> None:
        """Establish a connection with retries (reuses a healthy client)."""
        if self._client:
            try:
                await self._client.ping()
                logger.debug("Redis already connected.")
                return
            except Exception:
                self._client = None  # stale client → reconnect

        last_err: Optional[Exception] = None
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                self._client = redis.from_url(
                    self.redis_url,
                    decode_responses=True,
                    socket_timeout=SOCKET_TIMEOUT,
                    socket_connect_timeout=SOCKET_TIMEOUT,
                    health_check_interval=HEALTH_CHECK_INTERVAL,
                    max_connections=POOL_MAX_CONNECTIONS,
                    client_name=CLIENT_NAME,
                )
                await self._client.ping()
                logger.info("Connected to Redis")
                return
            except Exception as e:  # noqa: BLE001
                last_err = e
                delay = self._backoff(attempt)
                logger.warning(
                    "Redis connect attempt %s/%s failed: %r (retrying in %.2fs)",
                    attempt, MAX_RETRIES, e, delay,
                )
                await asyncio.sleep(delay)

        self._client = None
        logger.error("Redis connection failed after %s retries.", MAX_RETRIES)
        raise RuntimeError("Redis connection failed") from last_err

    async def close(self) -> None:
        """Gracefully close the client and its pool."""
        if not self._client:
            return
        try:
            close = getattr(self._client, "aclose", None) or self._client.close
            await close()
            logger.info("Redis connection closed.")
        except RedisError as e:
            logger.warning("Error closing Redis connection: %s", e)
        finally:
            self._client = None

    async def is_connected(self) -> bool:
        """Return True if `PING` succeeds (healthy connection)."""
        if not self._client:
            return False
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False

    @property
    def client(self) -> Any:
        """Low-level client; ensure `connect()` was called at startup."""
        if not self._client:
            raise RuntimeError("Redis client not initialized. Call connect() first.")
        return self._client

    @staticmethod
    def _backoff(attempt: int) -> float:
        return BASE_DELAY * (2 ** (attempt - 1)) + random.uniform(0, BASE_DELAY)

    # ── helpers: idempotency / JSON / lock ───────────────────────────────────
    async def idempotency_set(self, key: str, value: Any, *, ttl_seconds: int = 600) -> None:
        """Store a JSON snapshot for idempotent responses (atomic SET with EX)."""
        await self.json_set(key, value, ttl_seconds=ttl_seconds)

    async def idempotency_get(self, key: str) -> Optional[Any]:
        """Load a JSON snapshot; `None` when missing or unparsable."""
        return await self.json_get(key, default=None)

    async def json_set(self, key: str, value: Any, *, ttl_seconds: Optional[int] = None) -> None:
        """Generic JSON setter with optional TTL."""
        data = json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
        if ttl_seconds:
            await self.client.set(key, data, ex=ttl_seconds)
        else:
            await self.client.set(key, data)

    async def json_get(self, key: str, default: Any = None) -> Any:
        """Generic JSON getter with sensible default on parse errors/None."""
        raw = await self.client.get(key)
        if raw is None:
            return default
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8", errors="replace")
        try:
            return json.loads(raw)
        except ValueError:
            return default

    @asynccontextmanager
    async def lock(
        self,
        name: str,
        *,
        timeout: int = 10,
        blocking_timeout: int = 3,
        sleep: float = 0.1,
    ):
        """
        Async distributed lock.

        1) Native Redis lock (`client.lock(...)`) when the client offers one.
        2) Otherwise a `SETNX` spin-lock where only the owner token releases
           the key.

        Raises the built-in `TimeoutError` when the lock is not acquired
        within `blocking_timeout` seconds.
        """
        rc = self.client

        if hasattr(rc, "lock"):
            lock_obj = rc.lock(name, timeout=timeout, blocking_timeout=blocking_timeout, sleep=sleep)
            acquired = await lock_obj.acquire()
            if not acquired:
                raise TimeoutError(f"Could not acquire lock {name!r}")
            try:
                yield
            finally:
                try:
                    await lock_obj.release()
                except Exception as e:  # lock may have expired
                    logger.warning("Lock release failed for %s: %s", name, e)
            return

        token = uuid.uuid4().hex
        loop = asyncio.get_running_loop()
        deadline = loop.time() + blocking_timeout
        while True:
            ok = await rc.set(name, token, ex=timeout, nx=True)
            if ok:
                break
            if loop.time() >= deadline:
                raise TimeoutError(f"Could not acquire lock {name!r}")
            await asyncio.sleep(sleep)
        try:
            yield
        finally:
            try:
                current = await rc.get(name)
                if inspect.isawaitable(current):  # pragma: no cover
                    current = await current
                if current == token:
                    await rc.delete(name)
            except Exception as e:
                logger.warning("Lock release failed for %s: %s", name, e)


redis_wrapper = RedisClient(settings.REDIS_URL)
