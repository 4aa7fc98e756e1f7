"""
Permission Predicates.

Role checks for the admin area. Kept as plain functions so services,
endpoints and templates all ask the same questions.
"""

from asof.backend.models.enums import EDITORIAL_ROLES, MANAGER_ROLES
from asof.backend.models.post import Post
from asof.backend.models.user import User


def can_publish_post(user: User) -> bool:
    """SUPER_ADMIN, ADMIN and EDITOR may publish."""
    return user.role in EDITORIAL_ROLES


def can_edit_post(user: User, post: Post) -> bool:
    """Editorial roles may edit any post; authors only their own."""
    return user.role in EDITORIAL_ROLES or post.author_id == user.id


def can_delete_post(user: User) -> bool:
    return user.role in MANAGER_ROLES


def can_manage_posts(user: User) -> bool:
    """Whether the user sees every post in the admin listing."""
    return user.role in EDITORIAL_ROLES
