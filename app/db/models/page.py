from __future__ import annotations

"""
📄 CMS — Page
=============

A titled piece of content with a banner (image or video) held in object
storage. Pages are addressed publicly by `slug` and hard-deleted.

• `slug` is derived from `title` and unique.
• `banner_path` stores the storage *key*; responses render it as a URL.
• A page is *published* when `published_at` is set and not in the future.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import relationship

from app.db.base_class import Base, BigIntPK, PKMixin, TimestampMixin


class Page(PKMixin, TimestampMixin, Base):
    __tablename__ = "pages"

    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    banner_type = Column(String(16), nullable=False, doc="image | video")
    banner_path = Column(String(1024), nullable=False)
    content = Column(Text, nullable=False)
    user_id = Column(BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    published_at = Column(DateTime(timezone=True), nullable=True)

    __mapper_args__ = {"eager_defaults": True}

    user = relationship("User", lazy="selectin")

    __table_args__ = (
        Index("ix_pages_created_desc", text("created_at DESC")),
    )
