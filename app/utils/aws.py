# app/utils/aws.py
from __future__ import annotations

"""
🧊 CMS • S3 Utilities
=====================

Thin, hardened S3 wrapper used by the content services (page banners,
media files, team profile pictures).

🎯 Goals
--------
- Explicit timeouts + bounded retries
- Defensive key normalization (no leading slash, no `..`)
- Pluggable creds (env / role / IRSA) with explicit override if provided
- Optional CDN base URL for public asset links
- Zero secret leakage in logs

🔗 Contract
-----------
- Class: `S3Client`, `S3StorageError`
- Methods: `put_bytes`, `delete`, `head`, `exists`, `url`
           (plus helpers: `cdn_url`, `object_url`)

All methods are blocking (boto3); async callers wrap them with
`asyncio.to_thread`.
"""

from typing import Any, Dict, Optional
import logging
import re

import boto3
import botocore
from botocore.config import Config as BotoConfig

from app.core.config import settings

logger = logging.getLogger("app.storage")

# ─────────────────────────────────────────────────────────────────────────────
# 🧱 Exceptions
# ─────────────────────────────────────────────────────────────────────────────

class S3StorageError(RuntimeError):
    """Raised when a storage operation fails (network, auth, policy, etc.)."""


# ─────────────────────────────────────────────────────────────────────────────
# 🧰 Key validation
# ─────────────────────────────────────────────────────────────────────────────

_KEY_ALLOWED_RE = re.compile(r"[A-Za-z0-9._\-/+=@() ]+")
_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _normalize_key(key: str) -> str:
    """
    Normalize and validate S3 object keys.

    1) Coerce to str, strip whitespace
    2) Remove leading '/'
    3) Collapse '//' runs
    4) Reject path traversal ('..') and disallowed characters
    """
    k = str(key or "").strip().lstrip("/")
    k = re.sub(r"/{2,}", "/", k)
    if not k:
        raise S3StorageError("Invalid storage key: empty")
    if ".." in k:
        raise S3StorageError("Invalid storage key: path traversal detected")
    if not _KEY_ALLOWED_RE.fullmatch(k):
        raise S3StorageError("Invalid storage key: contains forbidden characters")
    return k


def _error_code(exc: botocore.exceptions.ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


# ─────────────────────────────────────────────────────────────────────────────
# 📦 S3 Client
# ─────────────────────────────────────────────────────────────────────────────

class S3Client:
    """
    High-level S3 wrapper with safe defaults.

    Parameters
    ----------
    bucket : str | None
        Destination bucket. Defaults to `settings.AWS_BUCKET_NAME`.
    region_name : str | None
        Defaults to `settings.AWS_REGION`.
    endpoint_url : str | None
        Custom S3-compatible endpoint (MinIO/LocalStack). Defaults to
        `settings.AWS_S3_ENDPOINT_URL`.
    cdn_base_url : str | None
        If set, `url()` joins this with normalized keys for public links.

    Credentials come from settings when both key id and secret are present,
    otherwise from the standard AWS chain.
    """

    def __init__(
        self,
        bucket: Optional[str] = None,
        *,
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        cdn_base_url: Optional[str] = None,
    ) -> None:
        self.bucket = bucket or settings.AWS_BUCKET_NAME
        if not self.bucket:
            raise S3StorageError("AWS_BUCKET_NAME not configured")

        self.region = region_name or settings.AWS_REGION
        endpoint_cfg = endpoint_url or settings.AWS_S3_ENDPOINT_URL
        self._cdn_base = (cdn_base_url or settings.cdn_base_url or "").rstrip("/")

        cfg = BotoConfig(
            signature_version="s3v4",
            retries={"max_attempts": 5, "mode": "standard"},
            connect_timeout=3,
            read_timeout=10,
            s3={"addressing_style": "path" if endpoint_cfg else "virtual"},
        )

        client_kwargs: Dict[str, Any] = {"config": cfg, "region_name": self.region}
        if endpoint_cfg:
            client_kwargs["endpoint_url"] = endpoint_cfg
        ak = settings.AWS_ACCESS_KEY_ID
        sk = settings.AWS_SECRET_ACCESS_KEY.get_secret_value() if settings.AWS_SECRET_ACCESS_KEY else None
        if ak and sk:
            client_kwargs["aws_access_key_id"] = ak
            client_kwargs["aws_secret_access_key"] = sk

        try:
            self.client = boto3.client("s3", **client_kwargs)
        except Exception as e:  # pragma: no cover
            raise S3StorageError(f"Failed to create S3 client: {e}") from e

        self._endpoint = endpoint_cfg
        self._repr = f"S3Client(bucket={self.bucket}, region={self.region}, endpoint={'yes' if endpoint_cfg else 'no'})"

    # ────────────────────────────────────────────────────────────────────────
    # ✍️ Writes
    # ────────────────────────────────────────────────────────────────────────

    def put_bytes(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str,
        cache_control: Optional[str] = None,
    ) -> str:
        """Upload a payload and return the normalized key.

        Raises
        ------
        S3StorageError
            On upload failure or invalid key.
        """
        k = _normalize_key(key)
        args: Dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": k,
            "Body": data,
            "ContentType": content_type,
        }
        if cache_control:
            args["CacheControl"] = cache_control
        try:
            self.client.put_object(**args)
        except Exception as e:
            raise S3StorageError(f"Failed to upload object: {e}") from e
        return k

    def delete(self, key: str) -> None:
        """Delete an object; deleting a missing key is not an error."""
        k = _normalize_key(key)
        try:
            self.client.delete_object(Bucket=self.bucket, Key=k)
        except botocore.exceptions.ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return
            raise S3StorageError(f"Failed to delete object: {e}") from e
        except Exception as e:
            raise S3StorageError(f"Failed to delete object: {e}") from e

    # ────────────────────────────────────────────────────────────────────────
    # 🔎 Metadata helpers
    # ────────────────────────────────────────────────────────────────────────

    def head(self, key: str) -> Optional[Dict[str, Any]]:
        """
        HEAD the object and return its metadata, or None if it does not exist.

        Any other failure (auth, network) raises `S3StorageError` so callers
        can tell "missing" apart from "storage unavailable".
        """
        k = _normalize_key(key)
        try:
            resp = self.client.head_object(Bucket=self.bucket, Key=k)
            return dict(resp or {})
        except botocore.exceptions.ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return None
            raise S3StorageError(f"Failed to read object metadata: {e}") from e
        except Exception as e:
            raise S3StorageError(f"Failed to read object metadata: {e}") from e

    def exists(self, key: str) -> bool:
        """Boolean existence check using `HEAD`."""
        return self.head(key) is not None

    # ────────────────────────────────────────────────────────────────────────
    # 🌐 Public URL helpers
    # ────────────────────────────────────────────────────────────────────────

    def cdn_url(self, key: str) -> Optional[str]:
        if not self._cdn_base:
            return None
        return f"{self._cdn_base}/{_normalize_key(key)}"

    def object_url(self, key: str) -> str:
        """Direct (unsigned) S3 URL; custom endpoints use path-style."""
        k = _normalize_key(key)
        if self._endpoint:
            return f"{self._endpoint.rstrip('/')}/{self.bucket}/{k}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{k}"

    def url(self, key: str) -> str:
        """Public URL for a key: CDN when configured, else the S3 object URL."""
        return self.cdn_url(key) or self.object_url(key)

    def __repr__(self) -> str:  # pragma: no cover
        return self._repr


__all__ = ["S3Client", "S3StorageError"]
