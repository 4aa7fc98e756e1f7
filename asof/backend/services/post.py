"""
Post Service.

Business logic for posts: the public listing, the admin listing and
the publishing workflow (DRAFT, REVIEW, SCHEDULED, PUBLISHED,
ARCHIVED, DELETED). There is no transition table; the rules are:

- only users who may publish can set PUBLISHED
- SCHEDULED needs a scheduled_for time
- DELETED is reached through delete() only, as a soft delete
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from asof.backend.core.config import get_app_config
from asof.backend.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from asof.backend.core.pagination import Page, clamp_page_params
from asof.backend.core.utils import reading_time_minutes, slugify, utc_now
from asof.backend.models.enums import AuditAction, ContentStatus
from asof.backend.models.post import Post
from asof.backend.models.user import User
from asof.backend.repositories.post import SORT_COLUMNS, PostRepository
from asof.backend.repositories.taxonomy import CategoryRepository, TagRepository
from asof.backend.schemas.post import PostCreate, PostUpdate
from asof.backend.services.base import BaseService
from asof.backend.services.permissions import (
    can_delete_post,
    can_edit_post,
    can_manage_posts,
    can_publish_post,
)

PUBLISH_FORBIDDEN = "Você não tem permissão para publicar. Envie para revisão."


class PostService(BaseService):
    """
    Service for post business logic.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = PostRepository(session)
        self.categories = CategoryRepository(session)
        self.tags = TagRepository(session)
        self._app_config = get_app_config()

    # -- public -----------------------------------------------------------

    async def list_published(
        self,
        page: int | None = 1,
        limit: int | None = None,
        category_slug: str | None = None,
        featured: bool | None = None,
    ) -> Page[Post]:
        """Published posts, newest first."""
        params = clamp_page_params(
            page,
            limit,
            default_limit=self._app_config.content.posts_per_page,
            max_limit=self._app_config.application.pagination.max_limit,
        )
        posts, total = await self.repo.list_published(
            limit=params.limit,
            offset=params.offset,
            category_slug=category_slug,
            featured=featured,
        )
        return Page(items=posts, total=total, page=params.page, limit=params.limit)

    async def get_by_slug(self, slug: str) -> tuple[Post, list[Post]]:
        """
        A published post and its related posts. Counts as one view.

        Raises:
            NotFoundError: If no published post has this slug
        """
        post = await self.repo.get_published_by_slug(slug)
        if post is None:
            raise NotFoundError("Post não encontrado")

        await self._execute_db_operation("increment_views", self.repo.increment_views(post))
        related = await self.repo.list_related(post, self._app_config.content.related_posts)
        return post, related

    async def list_all_published(self) -> list[Post]:
        return await self.repo.list_all_published()

    # -- admin ------------------------------------------------------------

    async def get_by_id(self, post_id: str) -> Post:
        """
        Raises:
            NotFoundError: If the post does not exist or was deleted
        """
        return await self.repo.get_active(post_id)

    async def list_admin(
        self,
        user: User,
        page: int | None = 1,
        limit: int | None = None,
        search: str | None = None,
        status: ContentStatus | None = None,
        category_id: str | None = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> Page[Post]:
        """
        Admin listing with filters.

        Raises:
            AuthorizationError: If the user's role cannot manage posts
        """
        if not can_manage_posts(user):
            raise AuthorizationError("Permissão insuficiente")

        if sort_by not in SORT_COLUMNS:
            raise ValidationError(
                "Campo de ordenação inválido",
                details={"allowed": sorted(SORT_COLUMNS)},
            )
        if sort_order not in ("asc", "desc"):
            raise ValidationError("Ordem inválida", details={"allowed": ["asc", "desc"]})

        params = clamp_page_params(
            page,
            limit,
            default_limit=self._app_config.content.admin_page_size,
            max_limit=self._app_config.application.pagination.max_limit,
        )
        posts, total = await self.repo.list_admin(
            limit=params.limit,
            offset=params.offset,
            search=search or None,
            status=status,
            category_id=category_id or None,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return Page(items=posts, total=total, page=params.page, limit=params.limit)

    async def create(
        self,
        data: PostCreate,
        user: User,
        ip_address: str | None = None,
    ) -> Post:
        """
        Create a post authored by `user`.

        Raises:
            ValidationError: Missing title/content, bad status or schedule
            AuthorizationError: PUBLISHED requested without publish rights
        """
        self._validate_required(
            {"title": data.title, "content": data.content},
            ["title", "content"],
            message="Título e conteúdo são obrigatórios",
        )
        if data.status == ContentStatus.DELETED:
            raise ValidationError("Status inválido")
        if data.status == ContentStatus.PUBLISHED and not can_publish_post(user):
            raise AuthorizationError(PUBLISH_FORBIDDEN)
        if data.status == ContentStatus.SCHEDULED and data.scheduled_for is None:
            raise ValidationError("Informe a data de agendamento")

        await self._ensure_category(data.category_id)

        title = data.title.strip()
        slug = await self._unique_slug(data.slug or title)
        tags = await self.tags.get_many(data.tag_ids)

        self._log_operation("Creating post", slug=slug, status=data.status.value)

        post = await self._execute_db_operation(
            "create_post",
            self.repo.create(
                title=title,
                slug=slug,
                content=data.content,
                excerpt=data.excerpt,
                cover_image=data.cover_image,
                cover_image_alt=data.cover_image_alt,
                status=data.status,
                scheduled_for=data.scheduled_for,
                published_at=utc_now() if data.status == ContentStatus.PUBLISHED else None,
                is_featured=data.is_featured,
                category_id=data.category_id or None,
                meta_title=data.meta_title,
                meta_description=data.meta_description,
                reading_time=self._reading_time(data.content),
                author_id=user.id,
                tags=tags,
            ),
        )

        await self._record_audit(
            AuditAction.CREATE, "post", post.id, user.id,
            changes={"title": post.title, "status": post.status.value},
            ip_address=ip_address,
        )
        return post

    async def update(
        self,
        post_id: str,
        data: PostUpdate,
        user: User,
        ip_address: str | None = None,
    ) -> Post:
        """
        Partially update a post. Only fields present in the request change.

        Raises:
            NotFoundError: If the post does not exist or was deleted
            AuthorizationError: If the user may not edit, or may not publish
            ValidationError: Bad status or schedule
        """
        post = await self.repo.get_active(post_id)
        if not can_edit_post(user, post):
            raise AuthorizationError("Você não tem permissão para editar este post")

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return post

        previous_status = post.status
        new_status = changes.get("status") or previous_status

        if "status" in changes and changes["status"] is None:
            del changes["status"]
        if new_status == ContentStatus.DELETED:
            raise ValidationError("Use a exclusão para remover um post")
        if (
            new_status == ContentStatus.PUBLISHED
            and previous_status != ContentStatus.PUBLISHED
            and not can_publish_post(user)
        ):
            raise AuthorizationError(PUBLISH_FORBIDDEN)
        scheduled_for = changes.get("scheduled_for", post.scheduled_for)
        if new_status == ContentStatus.SCHEDULED and scheduled_for is None:
            raise ValidationError("Informe a data de agendamento")

        updates: dict[str, Any] = {}
        for field in (
            "excerpt", "cover_image", "cover_image_alt", "scheduled_for",
            "is_featured", "meta_title", "meta_description",
        ):
            if field in changes:
                updates[field] = changes[field]

        if changes.get("title"):
            updates["title"] = changes["title"].strip()
        if changes.get("content"):
            updates["content"] = changes["content"]
            updates["reading_time"] = self._reading_time(changes["content"])
        if "slug" in changes:
            source = changes["slug"] or updates.get("title", post.title)
            updates["slug"] = await self._unique_slug(source, exclude_id=post.id)
        if "category_id" in changes:
            await self._ensure_category(changes["category_id"])
            updates["category_id"] = changes["category_id"] or None
        if changes.get("tag_ids") is not None:
            updates["tags"] = await self.tags.get_many(changes["tag_ids"])
        if "status" in changes:
            updates["status"] = new_status
            if new_status == ContentStatus.PUBLISHED and post.published_at is None:
                updates["published_at"] = utc_now()

        self._log_operation("Updating post", post_id=post.id, fields=sorted(changes))
        post = await self._execute_db_operation("update_post", self.repo.apply(post, **updates))

        published_now = (
            new_status == ContentStatus.PUBLISHED
            and previous_status != ContentStatus.PUBLISHED
        )
        await self._record_audit(
            AuditAction.PUBLISH if published_now else AuditAction.UPDATE,
            "post", post.id, user.id,
            changes={"fields": sorted(changes)},
            ip_address=ip_address,
        )
        return post

    async def delete(self, post_id: str, user: User, ip_address: str | None = None) -> None:
        """
        Soft-delete a post.

        Raises:
            AuthorizationError: If the user may not delete posts
            NotFoundError: If the post does not exist or was already deleted
        """
        if not can_delete_post(user):
            raise AuthorizationError("Você não tem permissão para excluir posts")

        post = await self.repo.get_active(post_id)
        await self._execute_db_operation(
            "delete_post",
            self.repo.apply(post, deleted_at=utc_now(), status=ContentStatus.DELETED),
        )
        await self._record_audit(
            AuditAction.DELETE, "post", post.id, user.id,
            changes={"title": post.title},
            ip_address=ip_address,
        )
        self._log_operation("Post deleted", post_id=post.id)

    async def publish_due_scheduled(self) -> int:
        """
        Publish every SCHEDULED post whose time has come.

        published_at is set to the scheduled time, not the time the job ran.

        Returns:
            Number of posts published
        """
        due = await self.repo.list_due_scheduled(utc_now())
        for post in due:
            await self.repo.apply(
                post,
                status=ContentStatus.PUBLISHED,
                published_at=post.scheduled_for,
            )
            await self._record_audit(
                AuditAction.PUBLISH, "post", post.id, None,
                changes={"scheduled_for": post.scheduled_for.isoformat()},
            )

        if due:
            self._log_operation("Scheduled posts published", count=len(due))
        return len(due)

    async def dashboard(self, recent_limit: int = 5) -> dict[str, Any]:
        """Counts per status and the most recently edited posts."""
        counts = await self.repo.count_by_status()
        return {
            "counts": counts,
            "total": sum(counts.values()),
            "recent": await self.repo.list_recent(recent_limit),
        }

    # -- helpers ----------------------------------------------------------

    def _reading_time(self, content: str) -> int:
        return reading_time_minutes(content, self._app_config.content.words_per_minute)

    async def _unique_slug(self, source: str, exclude_id: str | None = None) -> str:
        """Slugify and append -2, -3, ... until no other post uses it."""
        base = slugify(source) or "post"
        candidate = base
        suffix = 2
        while await self.repo.slug_exists(candidate, exclude_id=exclude_id):
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

    async def _ensure_category(self, category_id: str | None) -> None:
        if category_id and not await self.categories.exists(category_id):
            raise ValidationError("Categoria inválida", details={"category_id": category_id})
