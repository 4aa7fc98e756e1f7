"""
Media Schemas.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from asof.backend.models.enums import MediaType


class MediaResponse(BaseModel):
    """Schema for a media item in API responses."""

    id: str = Field(description="Media unique identifier")
    file_name: str = Field(description="Stored file name")
    original_name: str = Field(description="Name of the uploaded file")
    mime_type: str
    size: int = Field(description="Size in bytes")
    type: MediaType
    url: str = Field(description="Public URL")
    thumbnail_url: str | None = Field(default=None, description="Thumbnail URL (images only)")
    width: int | None = None
    height: int | None = None
    alt: str | None = None
    caption: str | None = None
    title: str | None = None
    description: str | None = None
    uploaded_by_id: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MediaUpdate(BaseModel):
    """
    Editable media metadata.

    Unknown fields are ignored; at least one of the four must be sent.
    """

    alt: str | None = Field(default=None, max_length=255)
    caption: str | None = None
    title: str | None = Field(default=None, max_length=255)
    description: str | None = None


class MediaTypeStats(BaseModel):
    count: int
    total_size: int


class MediaListData(BaseModel):
    """Media list page with library statistics."""

    items: list[MediaResponse]
    total: int
    limit: int
    offset: int
    has_more: bool
    stats: dict[str, MediaTypeStats] = Field(default_factory=dict)
