"""
Media Model.

Files uploaded through the admin media library.
"""

from sqlalchemy import Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from asof.backend.models.base import Base, SoftDeleteMixin, TimestampMixin, UUIDMixin
from asof.backend.models.enums import MediaType


class Media(UUIDMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Uploaded file. Images also carry dimensions and a thumbnail."""

    __tablename__ = "media"

    file_name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(150), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[MediaType] = mapped_column(
        Enum(MediaType, native_enum=False, length=20),
        nullable=False,
        index=True,
    )
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    thumbnail_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    width: Mapped[int | None] = mapped_column(Integer, nullable=True)
    height: Mapped[int | None] = mapped_column(Integer, nullable=True)

    alt: Mapped[str | None] = mapped_column(String(255), nullable=True)
    caption: Mapped[str | None] = mapped_column(Text, nullable=True)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    uploaded_by_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Media(id={self.id}, file_name={self.file_name!r})>"
