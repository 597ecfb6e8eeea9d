from __future__ import annotations

"""
🏷️ CMS — Role (team member job roles)
=====================================

Job roles assigned to team members (e.g. Developer, Designer). Not to be
confused with the account role on `User`.

• `name` is unique across all rows, trashed ones included.
• Soft-deleted; a role still referenced by live team members cannot be removed.
"""

from sqlalchemy import Column, String, Text

from app.db.base_class import Base, PKMixin, SoftDeleteMixin, TimestampMixin


class Role(PKMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "roles"

    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)

    __mapper_args__ = {"eager_defaults": True}
