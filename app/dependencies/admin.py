from __future__ import annotations

"""
Admin guards and content policies
---------------------------------
Centralized policy checks so every content router applies the same rule:
reads are public; `create`, `update` and `delete` require an admin account.
Each denial carries a resource-specific 403 message.

Exports
- is_admin(user): admin role check (tolerates anonymous `None`)
- authorize(user, action, resource): raise 403 unless the policy allows it
"""

from typing import Dict, Literal, Optional, Tuple

from app.core.exceptions import PermissionDeniedException
from app.db.models.user import User
from app.schemas.enums import UserRole

Action = Literal["create", "update", "delete"]
Resource = Literal["page", "media", "team", "role"]

_DENIED: Dict[Tuple[str, str], str] = {
    ("page", "create"): "You are not authorized to create pages",
    ("page", "update"): "You are not authorized to update this page",
    ("page", "delete"): "You are not authorized to delete this page",
    ("media", "create"): "You are not authorized to upload media",
    ("media", "update"): "You are not authorized to update this media",
    ("media", "delete"): "You are not authorized to delete this media",
    ("team", "create"): "You are not authorized to create team members",
    ("team", "update"): "You are not authorized to update this team member",
    ("team", "delete"): "You are not authorized to delete this team member",
    ("role", "create"): "You are not authorized to create roles",
    ("role", "update"): "You are not authorized to update this role",
    ("role", "delete"): "You are not authorized to delete this role",
}


def is_admin(user: Optional[User]) -> bool:
    """Return True if the user has the admin account role."""
    return user is not None and getattr(user, "role", None) == UserRole.ADMIN.value


def can(user: Optional[User], action: str) -> bool:
    """Policy decision. `view`/`viewAny` are public; writes need an admin."""
    if action in ("view", "viewAny"):
        return True
    return is_admin(user)


def authorize(user: Optional[User], action: Action, resource: Resource) -> None:
    if not can(user, action):
        raise PermissionDeniedException(_DENIED[(resource, action)])


__all__ = ["is_admin", "can", "authorize"]
