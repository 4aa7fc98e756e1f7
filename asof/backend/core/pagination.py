"""
Pagination Utilities.

Page-number pagination for list endpoints and list pages. The public
news listing, the admin post table and the JSON APIs all page the same
way: `page` starts at 1, `limit` is the page size.
"""

import math
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from asof.backend.schemas.base import PaginatedResponse, PaginationInfo, ResponseMetadata

T = TypeVar("T")


@dataclass
class PageParams:
    """Validated page number and page size."""

    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class Page(Generic[T]):
    """
    One page of results plus the total row count.

    Returned by repositories and services; endpoints turn it into a
    PaginatedResponse and templates read it directly.
    """

    items: list[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    def to_info(self) -> PaginationInfo:
        return PaginationInfo(
            page=self.page,
            limit=self.limit,
            total=self.total,
            total_pages=self.total_pages,
            has_more=self.has_more,
        )


def clamp_page_params(page: int | None, limit: int | None, default_limit: int, max_limit: int) -> PageParams:
    """Coerce user-supplied page values into a sane PageParams."""
    safe_page = page if page and page > 0 else 1
    safe_limit = limit if limit and limit > 0 else default_limit
    return PageParams(page=safe_page, limit=min(safe_limit, max_limit))


def create_paginated_response(
    page: Page[Any],
    item_schema: type[BaseModel],
    request_id: str | None = None,
) -> dict[str, Any]:
    """
    Create a standardized paginated response.

    Args:
        page: Page of ORM instances or dicts
        item_schema: Pydantic schema to validate items
        request_id: Request ID for metadata

    Returns:
        Dict matching PaginatedResponse structure
    """
    validated_items = [
        item_schema.model_validate(item).model_dump(mode="json")
        for item in page.items
    ]

    response = PaginatedResponse(
        data=validated_items,
        pagination=page.to_info(),
        metadata=ResponseMetadata(request_id=request_id),
    )

    return response.model_dump(mode="json")
