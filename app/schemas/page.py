from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.schemas.user import UserOut


class PageOut(BaseModel):
    """Page as returned by the API; `banner_path` is the public URL."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    banner_type: str
    banner_path: Optional[str] = None
    content: str
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[UserOut] = None
