from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.schemas.user import UserOut


class MediaOut(BaseModel):
    """Media item; `file_path` is the public URL (or `None` once the object is gone)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: str
    file_path: Optional[str] = None
    mime_type: str
    size: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    user: Optional[UserOut] = None
