from __future__ import annotations

"""
👤 CMS — User (accounts & auth)
===============================

Account entity storing login credentials and the admin/user role that drives
every content policy check.

Design highlights
-----------------
• Email is unique; stored lower-cased by the register service.
• `role` is a plain string (`admin` | `user`) so the column stays portable.
• Timestamps are DB-driven and tz-aware.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, String, text

from app.db.base_class import Base, PKMixin, TimestampMixin
from app.schemas.enums import UserRole


class User(PKMixin, TimestampMixin, Base):
    """Account record with credentials and role."""

    __tablename__ = "users"

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    hashed_password = Column(String(255), nullable=False, doc="BCrypt hash of the password")
    role = Column(String(16), nullable=False, server_default=text(f"'{UserRole.USER.value}'"))
    is_active = Column(Boolean, nullable=False, server_default=text("true"))

    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'user')", name="role_valid"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
