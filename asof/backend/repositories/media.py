"""
Media Repository.
"""

from sqlalchemy import func, or_, select

from asof.backend.core.exceptions import NotFoundError
from asof.backend.models.enums import MediaType
from asof.backend.models.media import Media
from asof.backend.repositories.base import BaseRepository

SORT_ORDERS = {
    "newest": Media.created_at.desc(),
    "oldest": Media.created_at.asc(),
    "name-asc": Media.original_name.asc(),
    "name-desc": Media.original_name.desc(),
    "size-asc": Media.size.asc(),
    "size-desc": Media.size.desc(),
}


class MediaRepository(BaseRepository[Media]):
    model = Media
    not_found_message = "Mídia não encontrada"

    async def get_active(self, id: str) -> Media:
        """
        Raises:
            NotFoundError: If the media item does not exist or was deleted
        """
        result = await self.session.execute(
            select(Media).where(Media.id == id).where(Media.deleted_at.is_(None))
        )
        media = result.scalar_one_or_none()
        if media is None:
            raise NotFoundError(self.not_found_message)
        return media

    async def list_filtered(
        self,
        limit: int,
        offset: int,
        media_type: MediaType | None = None,
        search: str | None = None,
        sort: str = "newest",
    ) -> tuple[list[Media], int]:
        """
        Non-deleted media matching the filters.

        Returns:
            Tuple of (media items, total count matching the filters)
        """
        query = select(Media).where(Media.deleted_at.is_(None))
        if media_type is not None:
            query = query.where(Media.type == media_type)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(
                    Media.original_name.ilike(pattern),
                    Media.file_name.ilike(pattern),
                    Media.alt.ilike(pattern),
                    Media.title.ilike(pattern),
                )
            )

        count_result = await self.session.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar_one()

        ordering = SORT_ORDERS.get(sort, SORT_ORDERS["newest"])
        result = await self.session.execute(
            query.order_by(ordering, Media.id).limit(limit).offset(offset)
        )
        return list(result.scalars().all()), total

    async def stats_by_type(self) -> dict[str, dict[str, int]]:
        """Count and total size of non-deleted media per type."""
        result = await self.session.execute(
            select(Media.type, func.count(Media.id), func.coalesce(func.sum(Media.size), 0))
            .where(Media.deleted_at.is_(None))
            .group_by(Media.type)
        )
        return {
            media_type.value: {"count": count, "total_size": int(total_size)}
            for media_type, count, total_size in result.all()
        }
