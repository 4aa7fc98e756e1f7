"""
News Feed Service.

The public /noticias listing shows database posts and file-based news
side by side. This service merges both sources into one list ordered
by date, newest first. When a slug exists in both, the database post
wins.
"""

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from asof.backend.content.news import NewsItem, NewsStore
from asof.backend.core.config import get_app_config
from asof.backend.core.exceptions import NotFoundError
from asof.backend.core.pagination import Page, clamp_page_params
from asof.backend.models.post import Post
from asof.backend.services.post import PostService


@dataclass
class NewsEntry:
    """One row of the merged news listing."""

    slug: str
    title: str
    date: datetime
    source: str
    excerpt: str | None = None
    image: str | None = None
    image_alt: str | None = None
    author: str | None = None
    category_name: str | None = None
    category_slug: str | None = None
    category_color: str | None = None
    reading_time: int = 1
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_post(cls, post: Post) -> "NewsEntry":
        return cls(
            slug=post.slug,
            title=post.title,
            date=post.published_at or post.created_at,
            source="db",
            excerpt=post.excerpt,
            image=post.cover_image,
            image_alt=post.cover_image_alt,
            author=post.author.name if post.author else None,
            category_name=post.category.name if post.category else None,
            category_slug=post.category.slug if post.category else None,
            category_color=post.category.color if post.category else None,
            reading_time=post.reading_time,
            tags=[tag.name for tag in post.tags],
        )

    @classmethod
    def from_file(cls, item: NewsItem) -> "NewsEntry":
        return cls(
            slug=item.slug,
            title=item.title,
            date=item.date,
            source="file",
            excerpt=item.excerpt,
            image=item.image,
            image_alt=item.image_alt,
            author=item.author,
            category_name=item.category,
            category_slug=item.category_slug,
            reading_time=item.reading_time,
        )


@dataclass
class NewsArticle:
    """A single article ready for the detail page."""

    entry: NewsEntry
    content: str
    related: list[NewsEntry] = field(default_factory=list)


class NewsFeedService:
    def __init__(self, session: AsyncSession, store: NewsStore) -> None:
        self.posts = PostService(session)
        self.store = store
        self._app_config = get_app_config()

    async def list_entries(self, category_slug: str | None = None) -> list[NewsEntry]:
        """Every entry from both sources, newest first."""
        entries = [NewsEntry.from_post(post) for post in await self.posts.list_all_published()]
        if self._app_config.features.content_file_news_enabled:
            known = {entry.slug for entry in entries}
            entries.extend(
                NewsEntry.from_file(item)
                for item in await self.store.list_all()
                if item.slug not in known
            )

        if category_slug:
            entries = [entry for entry in entries if entry.category_slug == category_slug]

        entries.sort(key=lambda entry: entry.date, reverse=True)
        return entries

    async def list_page(
        self,
        page: int | None = 1,
        limit: int | None = None,
        category_slug: str | None = None,
    ) -> Page[NewsEntry]:
        params = clamp_page_params(
            page,
            limit,
            default_limit=self._app_config.content.posts_per_page,
            max_limit=self._app_config.application.pagination.max_limit,
        )
        entries = await self.list_entries(category_slug)
        return Page(
            items=entries[params.offset:params.offset + params.limit],
            total=len(entries),
            page=params.page,
            limit=params.limit,
        )

    async def get_article(self, slug: str) -> NewsArticle:
        """
        Database post first, then file news.

        Raises:
            NotFoundError: If neither source has the slug
        """
        try:
            post, related = await self.posts.get_by_slug(slug)
        except NotFoundError:
            pass
        else:
            return NewsArticle(
                entry=NewsEntry.from_post(post),
                content=post.content,
                related=[NewsEntry.from_post(item) for item in related],
            )

        if self._app_config.features.content_file_news_enabled:
            item = await self.store.get_by_slug(slug)
            if item is not None:
                related = [
                    NewsEntry.from_file(other)
                    for other in await self.store.list_all()
                    if other.slug != slug
                    and item.category_slug
                    and other.category_slug == item.category_slug
                ][: self._app_config.content.related_posts]
                return NewsArticle(
                    entry=NewsEntry.from_file(item),
                    content=item.content,
                    related=related,
                )

        raise NotFoundError("Notícia não encontrada")
