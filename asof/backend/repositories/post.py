"""
Post Repository.

Data access layer for posts. Public queries only ever see published,
non-deleted rows; admin queries see everything except soft-deleted
rows unless asked for them explicitly.
"""

from datetime import datetime

from sqlalchemy import Select, func, or_, select

from asof.backend.core.exceptions import NotFoundError
from asof.backend.models.enums import ContentStatus
from asof.backend.models.post import Post
from asof.backend.models.taxonomy import Category
from asof.backend.repositories.base import BaseRepository

SORT_COLUMNS = {
    "createdAt": Post.created_at,
    "updatedAt": Post.updated_at,
    "publishedAt": Post.published_at,
    "title": Post.title,
}


def _published() -> Select:
    return (
        select(Post)
        .where(Post.status == ContentStatus.PUBLISHED)
        .where(Post.deleted_at.is_(None))
    )


class PostRepository(BaseRepository[Post]):
    """
    Repository for Post model.

    author, category and tags are loaded with selectin on every query,
    so returned posts are safe to serialize outside the session.
    """

    model = Post
    not_found_message = "Post não encontrado"

    async def get_active(self, id: str) -> Post:
        """
        Non-deleted post by id.

        Raises:
            NotFoundError: If the post does not exist or was deleted
        """
        result = await self.session.execute(
            select(Post).where(Post.id == id).where(Post.deleted_at.is_(None))
        )
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundError(self.not_found_message)
        return post

    async def get_published_by_slug(self, slug: str) -> Post | None:
        result = await self.session.execute(_published().where(Post.slug == slug))
        return result.scalar_one_or_none()

    async def slug_exists(self, slug: str, exclude_id: str | None = None) -> bool:
        """Whether any post, deleted ones included, already uses the slug."""
        query = select(Post.id).where(Post.slug == slug)
        if exclude_id is not None:
            query = query.where(Post.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def list_published(
        self,
        limit: int,
        offset: int,
        category_slug: str | None = None,
        featured: bool | None = None,
    ) -> tuple[list[Post], int]:
        """
        Published posts, newest first.

        Returns:
            Tuple of (posts, total count matching the filters)
        """
        query = _published()
        if category_slug:
            query = query.join(Category, Post.category_id == Category.id).where(
                Category.slug == category_slug
            )
        if featured is not None:
            query = query.where(Post.is_featured == featured)

        total = await self._count(query)
        result = await self.session.execute(
            query.order_by(Post.published_at.desc(), Post.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total

    async def list_all_published(self) -> list[Post]:
        """Every published post, newest first (sitemap, merged news list)."""
        result = await self.session.execute(
            _published().order_by(Post.published_at.desc())
        )
        return list(result.scalars().all())

    async def list_related(self, post: Post, limit: int) -> list[Post]:
        """Published posts in the same category, excluding the post itself."""
        if post.category_id is None:
            return []
        result = await self.session.execute(
            _published()
            .where(Post.category_id == post.category_id)
            .where(Post.id != post.id)
            .order_by(Post.published_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_admin(
        self,
        limit: int,
        offset: int,
        search: str | None = None,
        status: ContentStatus | None = None,
        category_id: str | None = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> tuple[list[Post], int]:
        """
        Admin post listing.

        Deleted posts only appear when status=DELETED is requested.
        """
        query = select(Post)
        if status is not None:
            query = query.where(Post.status == status)
        if status != ContentStatus.DELETED:
            query = query.where(Post.deleted_at.is_(None))
        if category_id:
            query = query.where(Post.category_id == category_id)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(or_(Post.title.ilike(pattern), Post.content.ilike(pattern)))

        total = await self._count(query)

        column = SORT_COLUMNS.get(sort_by, Post.created_at)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        result = await self.session.execute(
            query.order_by(ordering).limit(limit).offset(offset)
        )
        return list(result.scalars().all()), total

    async def list_due_scheduled(self, now: datetime) -> list[Post]:
        """Scheduled posts whose publication time has arrived."""
        result = await self.session.execute(
            select(Post)
            .where(Post.status == ContentStatus.SCHEDULED)
            .where(Post.deleted_at.is_(None))
            .where(Post.scheduled_for.is_not(None))
            .where(Post.scheduled_for <= now)
        )
        return list(result.scalars().all())

    async def count_by_status(self) -> dict[str, int]:
        """Non-deleted post counts keyed by status name."""
        result = await self.session.execute(
            select(Post.status, func.count(Post.id))
            .where(Post.deleted_at.is_(None))
            .group_by(Post.status)
        )
        return {status.value: count for status, count in result.all()}

    async def list_recent(self, limit: int) -> list[Post]:
        result = await self.session.execute(
            select(Post)
            .where(Post.deleted_at.is_(None))
            .order_by(Post.updated_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def increment_views(self, post: Post) -> None:
        post.view_count = (post.view_count or 0) + 1
        await self.session.flush()

    async def _count(self, query: Select) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(query.order_by(None).subquery())
        )
        return result.scalar_one()
