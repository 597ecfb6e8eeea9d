from __future__ import annotations

"""
🧾 CMS — Audit Logs (security & compliance)
===========================================

Immutable record of user-initiated actions (auth events and content
mutations) with request context for incident response.

Conventions
-----------
• Avoid the reserved `metadata` attribute in SQLAlchemy by exposing it as
  `metadata_json` while keeping the DB column name `metadata`.
• `ondelete=SET NULL` on the user FK so audit history outlives accounts.
"""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, String, func, text

from app.db.base_class import Base, BigIntPK, PKMixin


class AuditLog(PKMixin, Base):
    __tablename__ = "audit_logs"

    user_id = Column(BigIntPK, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    request_id = Column(String(128), nullable=True, index=True, doc="Correlation ID")
    action = Column(String(64), nullable=False, index=True, doc="Action keyword (e.g., LOGIN, PAGE_CREATE)")
    status = Column(String(32), nullable=False, doc="Outcome (SUCCESS / FAILURE)")
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(1024), nullable=True)
    metadata_json = Column("metadata", JSON, nullable=True)
    occurred_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        Index("ix_audit_logs_user_ts_desc", "user_id", text("occurred_at DESC")),
        Index("ix_audit_logs_action_status_ts_desc", "action", "status", text("occurred_at DESC")),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<AuditLog id={self.id} user_id={self.user_id} action='{self.action}' "
            f"status='{self.status}' occurred_at={self.occurred_at}>"
        )
