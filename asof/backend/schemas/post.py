"""
Post Schemas.

Pydantic schemas for post API request/response validation.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from asof.backend.core.utils import to_naive_utc

from asof.backend.models.enums import ContentStatus
from asof.backend.schemas.auth import AuthorSummary
from asof.backend.schemas.taxonomy import CategorySummary, TagResponse


class PostCreate(BaseModel):
    """
    Schema for creating a new post.

    title and content are checked by PostService so that a missing
    value is reported as a 400 with a readable message.
    """

    title: str | None = Field(default=None, max_length=255, description="Post title")
    content: str | None = Field(default=None, description="Markdown body")
    slug: str | None = Field(
        default=None,
        max_length=255,
        description="URL slug; generated from the title when empty",
    )
    excerpt: str | None = Field(default=None, max_length=1000, description="Short summary")
    cover_image: str | None = Field(default=None, max_length=500, description="Cover image URL")
    cover_image_alt: str | None = Field(default=None, max_length=255)
    status: ContentStatus = Field(default=ContentStatus.DRAFT, description="Workflow status")
    scheduled_for: datetime | None = Field(
        default=None,
        description="Publication time (UTC), required when status is SCHEDULED",
    )
    is_featured: bool = Field(default=False, description="Show in the featured area")
    category_id: str | None = Field(default=None, description="Category identifier")
    tag_ids: list[str] = Field(default_factory=list, description="Tag identifiers")
    meta_title: str | None = Field(default=None, max_length=255)
    meta_description: str | None = Field(default=None, max_length=500)

    @field_validator("scheduled_for")
    @classmethod
    def scheduled_for_as_utc(cls, value: datetime | None) -> datetime | None:
        return to_naive_utc(value)


class PostUpdate(BaseModel):
    """Schema for updating an existing post. Only provided fields change."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = Field(default=None, min_length=1)
    slug: str | None = Field(default=None, max_length=255)
    excerpt: str | None = Field(default=None, max_length=1000)
    cover_image: str | None = Field(default=None, max_length=500)
    cover_image_alt: str | None = Field(default=None, max_length=255)
    status: ContentStatus | None = None
    scheduled_for: datetime | None = None
    is_featured: bool | None = None
    category_id: str | None = None
    tag_ids: list[str] | None = None
    meta_title: str | None = Field(default=None, max_length=255)
    meta_description: str | None = Field(default=None, max_length=500)

    @field_validator("scheduled_for")
    @classmethod
    def scheduled_for_as_utc(cls, value: datetime | None) -> datetime | None:
        return to_naive_utc(value)


class PostListResponse(BaseModel):
    """Schema for a post in list responses (no body)."""

    id: str
    title: str
    slug: str
    excerpt: str | None = None
    cover_image: str | None = None
    cover_image_alt: str | None = None
    status: ContentStatus
    published_at: datetime | None = None
    scheduled_for: datetime | None = None
    is_featured: bool
    reading_time: int
    view_count: int
    author: AuthorSummary | None = None
    category: CategorySummary | None = None
    tags: list[TagResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PostResponse(PostListResponse):
    """Schema for a single post in API responses."""

    content: str
    meta_title: str | None = None
    meta_description: str | None = None


class PostDetailResponse(BaseModel):
    """A published post together with related posts from its category."""

    post: PostResponse
    related: list[PostListResponse] = Field(default_factory=list)
