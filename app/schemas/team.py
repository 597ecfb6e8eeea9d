from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.schemas.role import RoleOut
from app.schemas.user import UserOut


class TeamOut(BaseModel):
    """Team member; `profile_picture` is the public URL (or `None`)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    bio: str
    profile_picture: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    user: Optional[UserOut] = None
    role: Optional[RoleOut] = None
