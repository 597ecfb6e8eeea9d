from __future__ import annotations

"""
👥 CMS — Team member
====================

Public team roster entry: display name, bio, profile picture and job role.
Each entry is linked to one user account; a user may hold at most one live
entry (enforced in the service since trashed rows keep their `user_id`).
Soft-deleted.
"""

from sqlalchemy import Column, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from app.db.base_class import Base, BigIntPK, PKMixin, SoftDeleteMixin, TimestampMixin


class Team(PKMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "teams"

    name = Column(String(255), nullable=False)
    role_id = Column(BigIntPK, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    bio = Column(Text, nullable=False)
    profile_picture = Column(String(1024), nullable=False)
    user_id = Column(BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    __mapper_args__ = {"eager_defaults": True}

    user = relationship("User", lazy="selectin")
    role = relationship("Role", lazy="selectin")
