"""
Post Model.

News articles and announcements managed in the admin area.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from asof.backend.models.base import Base, SoftDeleteMixin, TimestampMixin, UUIDMixin
from asof.backend.models.enums import ContentStatus
from asof.backend.models.taxonomy import Category, Tag, post_tags
from asof.backend.models.user import User


class Post(UUIDMixin, TimestampMixin, SoftDeleteMixin, Base):
    """
    Post database model.

    Content is stored as Markdown and rendered when displayed.
    Deletion is soft: deleted_at is set and status becomes DELETED.
    """

    __tablename__ = "posts"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    cover_image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    cover_image_alt: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[ContentStatus] = mapped_column(
        Enum(ContentStatus, native_enum=False, length=20),
        default=ContentStatus.DRAFT,
        nullable=False,
        index=True,
    )
    published_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    scheduled_for: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    reading_time: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    meta_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    meta_description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    author_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    category_id: Mapped[str | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    author: Mapped[User] = relationship(lazy="selectin")
    category: Mapped[Category | None] = relationship(lazy="selectin")
    tags: Mapped[list[Tag]] = relationship(secondary=post_tags, lazy="selectin")

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, slug={self.slug!r}, status={self.status})>"
