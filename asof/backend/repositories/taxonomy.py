"""
Category and Tag Repositories.
"""

from sqlalchemy import func, select

from asof.backend.models.enums import ContentStatus
from asof.backend.models.post import Post
from asof.backend.models.taxonomy import Category, Tag
from asof.backend.repositories.base import BaseRepository


class CategoryRepository(BaseRepository[Category]):
    model = Category
    not_found_message = "Categoria não encontrada"

    async def get_by_slug(self, slug: str) -> Category | None:
        result = await self.session.execute(
            select(Category)
            .where(Category.slug == slug)
            .where(Category.deleted_at.is_(None))
        )
        return result.scalar_one_or_none()

    async def list_visible(self) -> list[Category]:
        """Visible, non-deleted categories in menu order."""
        result = await self.session.execute(
            select(Category)
            .where(Category.is_visible == True)  # noqa: E712
            .where(Category.deleted_at.is_(None))
            .order_by(Category.order.asc(), Category.name.asc())
        )
        return list(result.scalars().all())

    async def count_published_posts(self) -> dict[str, int]:
        """Number of published, non-deleted posts per category id."""
        result = await self.session.execute(
            select(Post.category_id, func.count(Post.id))
            .where(Post.status == ContentStatus.PUBLISHED)
            .where(Post.deleted_at.is_(None))
            .where(Post.category_id.is_not(None))
            .group_by(Post.category_id)
        )
        return {category_id: count for category_id, count in result.all()}


class TagRepository(BaseRepository[Tag]):
    model = Tag
    not_found_message = "Tag não encontrada"

    async def get_by_slug(self, slug: str) -> Tag | None:
        result = await self.session.execute(select(Tag).where(Tag.slug == slug))
        return result.scalar_one_or_none()

    async def list_all(self) -> list[Tag]:
        result = await self.session.execute(select(Tag).order_by(Tag.name.asc()))
        return list(result.scalars().all())

    async def get_many(self, ids: list[str]) -> list[Tag]:
        """Tags for the given ids. Unknown ids are skipped."""
        if not ids:
            return []
        result = await self.session.execute(select(Tag).where(Tag.id.in_(ids)))
        return list(result.scalars().all())
