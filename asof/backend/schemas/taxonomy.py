"""
Category and Tag Schemas.
"""

from pydantic import BaseModel, ConfigDict, Field


class CategoryResponse(BaseModel):
    """Schema for a category in API responses."""

    id: str = Field(description="Category unique identifier")
    name: str = Field(description="Category name")
    slug: str = Field(description="URL slug")
    description: str | None = Field(default=None, description="Category description")
    color: str | None = Field(default=None, description="Hex color used in badges")
    icon: str | None = Field(default=None, description="Icon name")
    order: int = Field(default=0, description="Menu position")
    post_count: int | None = Field(
        default=None,
        description="Published posts in this category (only when requested)",
    )

    model_config = ConfigDict(from_attributes=True)


class CategorySummary(BaseModel):
    id: str
    name: str
    slug: str
    color: str | None = None

    model_config = ConfigDict(from_attributes=True)


class TagResponse(BaseModel):
    id: str
    name: str
    slug: str
    color: str | None = None

    model_config = ConfigDict(from_attributes=True)
