# app/db/models/__init__.py
"""
ORM model package. Importing it registers every table on `Base.metadata`
so string-based relationships ("User", "Role") resolve.
"""

from .user import User
from .role import Role
from .page import Page
from .media import Media
from .team import Team
from .audit_log import AuditLog

__all__ = ["User", "Role", "Page", "Media", "Team", "AuditLog"]
