"""
Database models.

Importing this package registers every table on Base.metadata, which
Alembic autogenerate and the test fixtures rely on.
"""

from asof.backend.models.audit_log import AuditLog
from asof.backend.models.base import Base
from asof.backend.models.enums import (
    AuditAction,
    ContentStatus,
    MediaType,
    UserRole,
    UserStatus,
)
from asof.backend.models.media import Media
from asof.backend.models.post import Post
from asof.backend.models.taxonomy import Category, Tag, post_tags
from asof.backend.models.user import Session, User

__all__ = [
    "AuditAction",
    "AuditLog",
    "Base",
    "Category",
    "ContentStatus",
    "Media",
    "MediaType",
    "Post",
    "Session",
    "Tag",
    "User",
    "UserRole",
    "UserStatus",
    "post_tags",
]
