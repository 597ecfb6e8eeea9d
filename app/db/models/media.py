from __future__ import annotations

"""
🖼️ CMS — Media
==============

Uploaded image/video files. The row keeps the storage key plus the MIME type
and byte size captured at upload time. Soft-deleted.
"""

from sqlalchemy import BigInteger, Column, ForeignKey, String
from sqlalchemy.orm import relationship

from app.db.base_class import Base, BigIntPK, PKMixin, SoftDeleteMixin, TimestampMixin


class Media(PKMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "media"

    name = Column(String(255), nullable=False)
    type = Column(String(16), nullable=False, doc="image | video")
    file_path = Column(String(1024), nullable=False)
    mime_type = Column(String(255), nullable=False)
    size = Column(BigInteger, nullable=False, doc="bytes")
    user_id = Column(BigIntPK, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    __mapper_args__ = {"eager_defaults": True}

    user = relationship("User", lazy="selectin")
