"""Enumerations shared by models, schemas and services."""

import enum


class UserRole(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    EDITOR = "EDITOR"
    AUTHOR = "AUTHOR"


class UserStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class ContentStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    REVIEW = "REVIEW"
    SCHEDULED = "SCHEDULED"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"
    DELETED = "DELETED"


class MediaType(str, enum.Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    DOCUMENT = "DOCUMENT"
    AUDIO = "AUDIO"


class AuditAction(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    PUBLISH = "PUBLISH"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"


# Roles allowed into the admin area at all
ADMIN_AREA_ROLES = frozenset(UserRole)

# Roles allowed to publish and to edit other people's posts
EDITORIAL_ROLES = frozenset({UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.EDITOR})

# Roles allowed to delete posts
MANAGER_ROLES = frozenset({UserRole.SUPER_ADMIN, UserRole.ADMIN})
