"""
Integration Tests for the Posts API.

Public listing and detail, the admin listing, and the publishing
workflow with its role rules.
"""

from datetime import timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from asof.backend.core.utils import utc_now
from asof.backend.models import AuditLog, Post
from asof.backend.models.enums import AuditAction, ContentStatus, UserRole
from asof.backend.services.post import PostService


class TestPublicListing:
    """Tests for GET /api/v1/posts."""

    @pytest.mark.asyncio
    async def test_empty_listing(self, client: AsyncClient, api):
        response = await client.get("/api/v1/posts")

        data = api.assert_success(response)
        assert data["data"] == []
        assert data["pagination"]["total"] == 0
        assert data["pagination"]["has_more"] is False

    @pytest.mark.asyncio
    async def test_only_published_posts_are_listed(
        self, client: AsyncClient, api, admin_user, make_post,
    ):
        await make_post(admin_user, "publicado")
        await make_post(admin_user, "rascunho", status=ContentStatus.DRAFT)
        await make_post(admin_user, "em-revisao", status=ContentStatus.REVIEW)
        await make_post(admin_user, "removido", deleted_at=utc_now())

        response = await client.get("/api/v1/posts")

        data = api.assert_success(response)
        assert [item["slug"] for item in data["data"]] == ["publicado"]
        assert "content" not in data["data"][0]
        assert data["data"][0]["author"]["name"] == "Admin ASOF"

    @pytest.mark.asyncio
    async def test_newest_first_with_pagination(
        self, client: AsyncClient, api, admin_user, make_post,
    ):
        now = utc_now()
        for index in range(3):
            await make_post(admin_user, f"post-{index}", published_at=now - timedelta(days=index))

        response = await client.get("/api/v1/posts", params={"page": 1, "limit": 2})

        data = api.assert_success(response)
        assert [item["slug"] for item in data["data"]] == ["post-0", "post-1"]
        assert data["pagination"] == {
            "page": 1,
            "limit": 2,
            "total": 3,
            "total_pages": 2,
            "has_more": True,
        }

        response = await client.get("/api/v1/posts", params={"page": 2, "limit": 2})
        data = api.assert_success(response)
        assert [item["slug"] for item in data["data"]] == ["post-2"]
        assert data["pagination"]["has_more"] is False

    @pytest.mark.asyncio
    async def test_filter_by_category_slug(
        self, client: AsyncClient, api, admin_user, make_post, category,
    ):
        await make_post(admin_user, "da-carreira", category_id=category.id)
        await make_post(admin_user, "sem-categoria")

        response = await client.get("/api/v1/posts", params={"category": "carreira"})

        data = api.assert_success(response)
        assert [item["slug"] for item in data["data"]] == ["da-carreira"]
        assert data["data"][0]["category"]["slug"] == "carreira"

    @pytest.mark.asyncio
    async def test_filter_featured(self, client: AsyncClient, api, admin_user, make_post):
        await make_post(admin_user, "destaque", is_featured=True)
        await make_post(admin_user, "comum")

        response = await client.get("/api/v1/posts", params={"featured": "true"})

        data = api.assert_success(response)
        assert [item["slug"] for item in data["data"]] == ["destaque"]

    @pytest.mark.asyncio
    async def test_limit_above_maximum_rejected(self, client: AsyncClient, api):
        response = await client.get("/api/v1/posts", params={"limit": 500})

        api.assert_validation_error(response, field="limit")


class TestPostBySlug:
    """Tests for GET /api/v1/posts/by-slug/{slug}."""

    @pytest.mark.asyncio
    async def test_returns_post_and_counts_view(
        self, client: AsyncClient, api, admin_user, make_post, db_session,
    ):
        post = await make_post(admin_user, "assembleia", content="# Assembleia\n\nTexto.")

        response = await client.get("/api/v1/posts/by-slug/assembleia")

        data = api.assert_success(response)
        assert data["data"]["post"]["content"] == "# Assembleia\n\nTexto."
        assert data["data"]["related"] == []

        stored = await db_session.get(Post, post.id)
        assert stored.view_count == 1

    @pytest.mark.asyncio
    async def test_related_posts_share_category(
        self, client: AsyncClient, api, admin_user, make_post, category,
    ):
        await make_post(admin_user, "principal", category_id=category.id)
        await make_post(admin_user, "relacionado", category_id=category.id)
        await make_post(admin_user, "outro")

        response = await client.get("/api/v1/posts/by-slug/principal")

        data = api.assert_success(response)
        assert [item["slug"] for item in data["data"]["related"]] == ["relacionado"]

    @pytest.mark.asyncio
    async def test_draft_is_not_public(self, client: AsyncClient, api, admin_user, make_post):
        await make_post(admin_user, "rascunho", status=ContentStatus.DRAFT)

        response = await client.get("/api/v1/posts/by-slug/rascunho")

        api.assert_error(response, 404, "RES_NOT_FOUND")


class TestAdminListing:
    """Tests for GET /api/v1/posts/admin."""

    @pytest.mark.asyncio
    async def test_requires_login(self, client: AsyncClient, api):
        response = await client.get("/api/v1/posts/admin")

        api.assert_error(response, 401, "AUTH_UNAUTHORIZED")

    @pytest.mark.asyncio
    async def test_author_is_forbidden(self, client: AsyncClient, api, as_author):
        response = await client.get("/api/v1/posts/admin")

        api.assert_error(response, 403, "AUTHZ_FORBIDDEN")

    @pytest.mark.asyncio
    async def test_lists_every_status_except_deleted(
        self, client: AsyncClient, api, as_admin, make_post,
    ):
        await make_post(as_admin, "publicado")
        await make_post(as_admin, "rascunho", status=ContentStatus.DRAFT)
        await make_post(as_admin, "removido", status=ContentStatus.DELETED, deleted_at=utc_now())

        response = await client.get("/api/v1/posts/admin", params={"sort_by": "title", "sort_order": "asc"})

        data = api.assert_success(response)
        assert [item["slug"] for item in data["data"]] == ["publicado", "rascunho"]

    @pytest.mark.asyncio
    async def test_deleted_posts_visible_when_requested(
        self, client: AsyncClient, api, as_admin, make_post,
    ):
        await make_post(as_admin, "removido", status=ContentStatus.DELETED, deleted_at=utc_now())

        response = await client.get("/api/v1/posts/admin", params={"status": "DELETED"})

        data = api.assert_success(response)
        assert [item["slug"] for item in data["data"]] == ["removido"]

    @pytest.mark.asyncio
    async def test_search_matches_title_and_content(
        self, client: AsyncClient, api, as_admin, make_post,
    ):
        await make_post(as_admin, "convenio", title="Novo convênio")
        await make_post(as_admin, "assembleia", content="Pauta do convênio médico")
        await make_post(as_admin, "outro", title="Outro assunto", content="Nada aqui")

        response = await client.get("/api/v1/posts/admin", params={"search": "convênio"})

        data = api.assert_success(response)
        assert sorted(item["slug"] for item in data["data"]) == ["assembleia", "convenio"]

    @pytest.mark.asyncio
    async def test_invalid_sort_field_rejected(self, client: AsyncClient, api, as_admin):
        response = await client.get("/api/v1/posts/admin", params={"sort_by": "password"})

        api.assert_validation_error(response, field="sort_by")


class TestCreatePost:
    """Tests for POST /api/v1/posts."""

    @pytest.mark.asyncio
    async def test_requires_login(self, client: AsyncClient, api):
        response = await client.post("/api/v1/posts", json={"title": "X", "content": "Y"})

        api.assert_error(response, 401, "AUTH_UNAUTHORIZED")

    @pytest.mark.asyncio
    async def test_create_draft_generates_slug(
        self, client: AsyncClient, api, as_admin, tag, category, db_session,
    ):
        response = await client.post(
            "/api/v1/posts",
            json={
                "title": "Notícias do Ano",
                "content": "palavra " * 450,
                "category_id": category.id,
                "tag_ids": [tag.id],
            },
        )

        data = api.assert_success(response, expected_status=201)
        post = data["data"]
        assert post["slug"] == "noticias-do-ano"
        assert post["status"] == "DRAFT"
        assert post["published_at"] is None
        assert post["reading_time"] == 3
        assert post["category"]["id"] == category.id
        assert [item["slug"] for item in post["tags"]] == ["itamaraty"]
        assert post["author"]["id"] == as_admin.id

        logs = (await db_session.execute(select(AuditLog))).scalars().all()
        assert [(log.action, log.entity_id) for log in logs] == [(AuditAction.CREATE, post["id"])]

    @pytest.mark.asyncio
    async def test_duplicate_title_gets_suffixed_slug(
        self, client: AsyncClient, api, as_admin, make_post,
    ):
        await make_post(as_admin, "assembleia-geral")

        response = await client.post(
            "/api/v1/posts",
            json={"title": "Assembleia Geral", "content": "Texto"},
        )

        data = api.assert_success(response, expected_status=201)
        assert data["data"]["slug"] == "assembleia-geral-2"

    @pytest.mark.asyncio
    async def test_publish_sets_published_at(self, client: AsyncClient, api, as_admin):
        response = await client.post(
            "/api/v1/posts",
            json={"title": "Publicado", "content": "Texto", "status": "PUBLISHED"},
        )

        data = api.assert_success(response, expected_status=201)
        assert data["data"]["published_at"] is not None

        public = await client.get("/api/v1/posts/by-slug/publicado")
        api.assert_success(public)

    @pytest.mark.asyncio
    async def test_missing_title_rejected(self, client: AsyncClient, api, as_admin):
        response = await client.post("/api/v1/posts", json={"content": "Texto"})

        data = api.assert_error(response, 400, "VAL_VALIDATION_ERROR")
        assert data["error"]["details"]["missing_fields"] == ["title"]

    @pytest.mark.asyncio
    async def test_scheduled_requires_date(self, client: AsyncClient, api, as_admin):
        response = await client.post(
            "/api/v1/posts",
            json={"title": "Agendado", "content": "Texto", "status": "SCHEDULED"},
        )

        api.assert_error(response, 400, "VAL_VALIDATION_ERROR")

    @pytest.mark.asyncio
    async def test_unknown_category_rejected(self, client: AsyncClient, api, as_admin):
        response = await client.post(
            "/api/v1/posts",
            json={"title": "Post", "content": "Texto", "category_id": "nao-existe"},
        )

        api.assert_error(response, 400, "VAL_VALIDATION_ERROR")

    @pytest.mark.asyncio
    async def test_author_cannot_publish(self, client: AsyncClient, api, as_author):
        response = await client.post(
            "/api/v1/posts",
            json={"title": "Post", "content": "Texto", "status": "PUBLISHED"},
        )

        api.assert_error(response, 403, "AUTHZ_FORBIDDEN")

    @pytest.mark.asyncio
    async def test_author_can_submit_for_review(self, client: AsyncClient, api, as_author):
        response = await client.post(
            "/api/v1/posts",
            json={"title": "Para revisão", "content": "Texto", "status": "REVIEW"},
        )

        data = api.assert_success(response, expected_status=201)
        assert data["data"]["status"] == "REVIEW"


class TestUpdatePost:
    """Tests for PUT/PATCH /api/v1/posts/{id}."""

    @pytest.mark.asyncio
    async def test_partial_update_keeps_other_fields(
        self, client: AsyncClient, api, as_admin, make_post,
    ):
        post = await make_post(as_admin, "original", status=ContentStatus.DRAFT, excerpt="Resumo")

        response = await client.patch(f"/api/v1/posts/{post.id}", json={"title": "Novo título"})

        data = api.assert_success(response)
        assert data["data"]["title"] == "Novo título"
        assert data["data"]["slug"] == "original"
        assert data["data"]["excerpt"] == "Resumo"

    @pytest.mark.asyncio
    async def test_publishing_records_publish_audit(
        self, client: AsyncClient, api, as_admin, make_post, db_session,
    ):
        post = await make_post(as_admin, "rascunho", status=ContentStatus.DRAFT)

        response = await client.put(f"/api/v1/posts/{post.id}", json={"status": "PUBLISHED"})

        data = api.assert_success(response)
        assert data["data"]["status"] == "PUBLISHED"
        assert data["data"]["published_at"] is not None

        logs = (await db_session.execute(select(AuditLog))).scalars().all()
        assert [log.action for log in logs] == [AuditAction.PUBLISH]

    @pytest.mark.asyncio
    async def test_author_edits_own_post(self, client: AsyncClient, api, as_author, make_post):
        post = await make_post(as_author, "meu-post", status=ContentStatus.DRAFT)

        response = await client.patch(f"/api/v1/posts/{post.id}", json={"content": "Novo texto"})

        data = api.assert_success(response)
        assert data["data"]["content"] == "Novo texto"

    @pytest.mark.asyncio
    async def test_author_cannot_edit_others_post(
        self, client: AsyncClient, api, as_author, admin_user, make_post,
    ):
        post = await make_post(admin_user, "do-admin", status=ContentStatus.DRAFT)

        response = await client.patch(f"/api/v1/posts/{post.id}", json={"title": "Invadido"})

        api.assert_error(response, 403, "AUTHZ_FORBIDDEN")

    @pytest.mark.asyncio
    async def test_author_cannot_publish_own_post(
        self, client: AsyncClient, api, as_author, make_post,
    ):
        post = await make_post(as_author, "meu-rascunho", status=ContentStatus.DRAFT)

        response = await client.patch(f"/api/v1/posts/{post.id}", json={"status": "PUBLISHED"})

        api.assert_error(response, 403, "AUTHZ_FORBIDDEN")

    @pytest.mark.asyncio
    async def test_status_deleted_rejected(self, client: AsyncClient, api, as_admin, make_post):
        post = await make_post(as_admin, "post")

        response = await client.patch(f"/api/v1/posts/{post.id}", json={"status": "DELETED"})

        api.assert_error(response, 400, "VAL_VALIDATION_ERROR")

    @pytest.mark.asyncio
    async def test_schedule_with_date(self, client: AsyncClient, api, as_admin, make_post):
        post = await make_post(as_admin, "futuro", status=ContentStatus.DRAFT)
        when = (utc_now() + timedelta(days=2)).replace(microsecond=0)

        response = await client.patch(
            f"/api/v1/posts/{post.id}",
            json={"status": "SCHEDULED", "scheduled_for": when.isoformat()},
        )

        data = api.assert_success(response)
        assert data["data"]["status"] == "SCHEDULED"
        assert data["data"]["scheduled_for"].startswith(when.isoformat())

    @pytest.mark.asyncio
    async def test_schedule_with_offset_is_stored_as_utc(
        self, client: AsyncClient, api, as_admin, make_post, db_session,
    ):
        post = await make_post(as_admin, "brasilia", status=ContentStatus.DRAFT)
        when = (utc_now() + timedelta(hours=1)).replace(microsecond=0)
        # 1h ahead in UTC reads 2h behind on a -03:00 wall clock
        local = (when - timedelta(hours=3)).replace(tzinfo=timezone(timedelta(hours=-3)))

        response = await client.patch(
            f"/api/v1/posts/{post.id}",
            json={"status": "SCHEDULED", "scheduled_for": local.isoformat()},
        )

        data = api.assert_success(response)
        assert data["data"]["scheduled_for"].startswith(when.isoformat())

        stored = await db_session.get(Post, post.id)
        assert stored.scheduled_for == when
        assert await PostService(db_session).publish_due_scheduled() == 0

    @pytest.mark.asyncio
    async def test_unknown_post_returns_404(self, client: AsyncClient, api, as_admin):
        response = await client.patch("/api/v1/posts/nao-existe", json={"title": "X"})

        api.assert_error(response, 404, "RES_NOT_FOUND")


class TestDeletePost:
    """Tests for DELETE /api/v1/posts/{id}."""

    @pytest.mark.asyncio
    async def test_admin_soft_deletes(
        self, client: AsyncClient, api, as_admin, make_post, db_session,
    ):
        post = await make_post(as_admin, "apagar")

        response = await client.delete(f"/api/v1/posts/{post.id}")

        api.assert_success(response)
        stored = await db_session.get(Post, post.id)
        assert stored is not None
        assert stored.status == ContentStatus.DELETED
        assert stored.deleted_at is not None

        public = await client.get("/api/v1/posts/by-slug/apagar")
        api.assert_error(public, 404)

        again = await client.delete(f"/api/v1/posts/{post.id}")
        api.assert_error(again, 404, "RES_NOT_FOUND")

    @pytest.mark.asyncio
    async def test_editor_cannot_delete(
        self, client: AsyncClient, api, make_user, login_as, make_post,
    ):
        editor = await make_user("editor@asof.org.br", role=UserRole.EDITOR)
        await login_as(editor)
        post = await make_post(editor, "do-editor")

        response = await client.delete(f"/api/v1/posts/{post.id}")

        api.assert_error(response, 403, "AUTHZ_FORBIDDEN")

    @pytest.mark.asyncio
    async def test_get_deleted_post_returns_404(self, client: AsyncClient, api, as_admin, make_post):
        post = await make_post(as_admin, "removido", deleted_at=utc_now())

        response = await client.get(f"/api/v1/posts/{post.id}")

        api.assert_error(response, 404, "RES_NOT_FOUND")
