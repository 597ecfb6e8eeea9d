# app/db/base.py
"""
CMS Backend — SQLAlchemy Base registry
======================================

Import all ORM models so their tables are registered on `Base.metadata`.
Used by Alembic autogeneration and by the test bootstrap (`create_all`).

Tip: Keep this file import-only; no runtime logic.
"""

from app.db.base_class import Base

# ───────────────────────────────────────────────────────────────
# Accounts & audit
# ───────────────────────────────────────────────────────────────
from app.db.models.user import User
from app.db.models.audit_log import AuditLog

# ───────────────────────────────────────────────────────────────
# Content: roles, pages, media, team members
# ───────────────────────────────────────────────────────────────
from app.db.models.role import Role
from app.db.models.page import Page
from app.db.models.media import Media
from app.db.models.team import Team

__all__ = [
    "Base",
    "User",
    "AuditLog",
    "Role",
    "Page",
    "Media",
    "Team",
]
