from __future__ import annotations

"""
InMemoryStorage — drop-in for `app.utils.aws.S3Client` in tests
===============================================================
Implements the `app.core.storage.Storage` protocol over a dict so tests can
assert which objects were written or removed without touching S3.
"""

from typing import Any, Dict, Optional

from app.utils.aws import S3StorageError

CDN_BASE = "https://cdn.test"


class InMemoryStorage:
    def __init__(self) -> None:
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.deleted: list[str] = []

    def put_bytes(self, key: str, data: bytes, *, content_type: str, cache_control: Optional[str] = None) -> str:
        self.objects[key] = {"data": data, "content_type": content_type, "cache_control": cache_control}
        return key

    def delete(self, key: str) -> None:
        self.objects.pop(key, None)
        self.deleted.append(key)

    def head(self, key: str) -> Optional[Dict[str, Any]]:
        obj = self.objects.get(key)
        if obj is None:
            return None
        return {"ContentLength": len(obj["data"]), "ContentType": obj["content_type"]}

    def exists(self, key: str) -> bool:
        return key in self.objects

    def url(self, key: str) -> str:
        return f"{CDN_BASE}/{key}"


class UnavailableStorage(InMemoryStorage):
    """
    Same store, but `exists`/`delete` raise `S3StorageError` once `down` is
    set, the way `S3Client` reports an unreachable bucket.
    """

    def __init__(self) -> None:
        super().__init__()
        self.down = False

    def _check(self) -> None:
        if self.down:
            raise S3StorageError("Failed to read object metadata: connection refused")

    def exists(self, key: str) -> bool:
        self._check()
        return super().exists(key)

    def delete(self, key: str) -> None:
        self._check()
        super().delete(key)


__all__ = ["InMemoryStorage", "UnavailableStorage", "CDN_BASE"]
