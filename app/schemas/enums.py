from __future__ import annotations

"""
Central enum definitions used across the CMS.

Design notes
------------
• All enums subclass `str, PyEnum` for JSON-friendly serialization.
• VALUE STRINGS are **stable** once deployed (stored as plain strings).
"""

from enum import Enum as PyEnum


# ──────────────────────────────────────────────────────────────
# Auth
# ──────────────────────────────────────────────────────────────
class UserRole(str, PyEnum):
    """Account role; only `admin` may create, update or delete content."""
    ADMIN = "admin"
    USER = "user"


# ──────────────────────────────────────────────────────────────
# Content
# ──────────────────────────────────────────────────────────────
class MediaKind(str, PyEnum):
    """Kind of an uploaded file (page banner / media item)."""
    IMAGE = "image"
    VIDEO = "video"

    @classmethod
    def from_mime(cls, mime_type: str | None) -> "MediaKind":
        return cls.VIDEO if "video" in (mime_type or "") else cls.IMAGE


__all__ = ["UserRole", "MediaKind"]
