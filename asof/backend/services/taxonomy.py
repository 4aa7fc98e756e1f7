"""
Category and Tag Service.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from asof.backend.models.taxonomy import Tag
from asof.backend.repositories.taxonomy import CategoryRepository, TagRepository
from asof.backend.schemas.taxonomy import CategoryResponse
from asof.backend.services.base import BaseService


class TaxonomyService(BaseService):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.categories = CategoryRepository(session)
        self.tags = TagRepository(session)

    async def list_categories(self, include_count: bool = False) -> list[CategoryResponse]:
        """Visible categories in menu order, optionally with published post counts."""
        categories = await self.categories.list_visible()
        counts = await self.categories.count_published_posts() if include_count else {}

        items = []
        for category in categories:
            item = CategoryResponse.model_validate(category)
            if include_count:
                item.post_count = counts.get(category.id, 0)
            items.append(item)
        return items

    async def list_tags(self) -> list[Tag]:
        return await self.tags.list_all()
