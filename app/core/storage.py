from __future__ import annotations

"""
CMS • Object Storage Layout & Access
====================================

Documented S3 key layout (single bucket):

    s3://{bucket}/
      pages/{YYYY}/{MM}/{40 hex}.{ext}     page banners (image / video)
      media/{YYYY}/{MM}/{40 hex}.{ext}     media library files
      teams/{YYYY}/{MM}/{40 hex}.{ext}     team profile pictures

Rows store the *key*; responses render it through `Storage.url()`.

Access
------
- `get_storage()` is the FastAPI dependency returning the process-wide
  `S3Client` (tests override it with an in-memory store).
- The async helpers below run the blocking boto3 calls in a worker thread.
"""

import asyncio
import secrets
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Optional, Protocol

from loguru import logger

from app.utils.aws import S3Client, S3StorageError

# Prefix constants
S3_PREFIX_PAGES = "pages"
S3_PREFIX_MEDIA = "media"
S3_PREFIX_TEAMS = "teams"


class Storage(Protocol):
    """Subset of `S3Client` the services depend on."""

    def put_bytes(self, key: str, data: bytes, *, content_type: str, cache_control: Optional[str] = None) -> str: ...
    def delete(self, key: str) -> None: ...
    def head(self, key: str) -> Optional[Dict[str, Any]]: ...
    def exists(self, key: str) -> bool: ...
    def url(self, key: str) -> str: ...


@lru_cache(maxsize=1)
def _default_storage() -> S3Client:
    return S3Client()


def get_storage() -> Storage:
    """FastAPI dependency: the configured S3 storage client."""
    return _default_storage()


def build_object_key(prefix: str, extension: str, *, now: Optional[datetime] = None) -> str:
    """`{prefix}/{YYYY}/{MM}/{random}.{ext}` using a 40-char hex name."""
    now = now or datetime.now(timezone.utc)
    ext = extension.lower().lstrip(".")
    return f"{prefix}/{now:%Y}/{now:%m}/{secrets.token_hex(20)}.{ext}"


# ─────────────────────────────────────────────────────────────
# Async wrappers
# ─────────────────────────────────────────────────────────────
async def store_upload(storage: Storage, prefix: str, extension: str, data: bytes, content_type: str) -> str:
    key = build_object_key(prefix, extension)
    return await asyncio.to_thread(storage.put_bytes, key, data, content_type=content_type)


async def delete_object(storage: Storage, key: Optional[str], *, context: str) -> None:
    """
    Delete a stored object, never failing the caller.

    A missing object is logged as a warning; storage errors are logged and
    swallowed so the database side of the operation can proceed.
    """
    if not key:
        return
    try:
        if not await asyncio.to_thread(storage.exists, key):
            logger.warning("{} file not found in storage | key={}", context, key)
            return
        await asyncio.to_thread(storage.delete, key)
    except S3StorageError as e:
        logger.error("Error deleting {} file from storage | key={} | err={}", context, key, e)


@asynccontextmanager
async def discard_on_failure(storage: Storage, key: Optional[str], *, context: str):
    """Delete the freshly stored `key` when the enclosed block raises, then re-raise."""
    try:
        yield
    except Exception:
        await delete_object(storage, key, context=context)
        raise


async def public_url(storage: Storage, key: Optional[str], *, context: str) -> Optional[str]:
    """
    URL for a stored object, or `None` when it no longer exists.

    Missing objects log a warning; storage errors log an error. Neither
    fails the read.
    """
    if not key:
        return None
    try:
        if not await asyncio.to_thread(storage.exists, key):
            logger.warning("{} file not found in storage | key={}", context, key)
            return None
        return storage.url(key)
    except S3StorageError as e:
        logger.error("Error checking {} file in storage | key={} | err={}", context, key, e)
        return None


__all__ = [
    "S3_PREFIX_PAGES",
    "S3_PREFIX_MEDIA",
    "S3_PREFIX_TEAMS",
    "Storage",
    "get_storage",
    "build_object_key",
    "store_upload",
    "delete_object",
    "discard_on_failure",
    "public_url",
]
