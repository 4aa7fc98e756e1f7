"""
Integration Tests for the Category and Tag API.
"""

import pytest
from httpx import AsyncClient

from asof.backend.models import Category, Tag
from asof.backend.models.enums import ContentStatus


@pytest.fixture
async def categories(db_session_factory):
    async with db_session_factory() as session:
        items = [
            Category(name="Eventos", slug="eventos", order=2, is_visible=True),
            Category(name="Carreira", slug="carreira", order=1, is_visible=True),
            Category(name="Interna", slug="interna", order=0, is_visible=False),
        ]
        session.add_all(items)
        await session.commit()
        return {item.slug: item for item in items}


class TestCategories:
    """Tests for GET /api/v1/categories."""

    @pytest.mark.asyncio
    async def test_visible_categories_in_menu_order(self, client: AsyncClient, api, categories):
        response = await client.get("/api/v1/categories")

        data = api.assert_success(response)
        assert [item["slug"] for item in data["data"]] == ["carreira", "eventos"]
        assert data["data"][0]["post_count"] is None

    @pytest.mark.asyncio
    async def test_include_count_counts_published_only(
        self, client: AsyncClient, api, categories, admin_user, make_post,
    ):
        carreira = categories["carreira"]
        await make_post(admin_user, "publicado-1", category_id=carreira.id)
        await make_post(admin_user, "publicado-2", category_id=carreira.id)
        await make_post(admin_user, "rascunho", status=ContentStatus.DRAFT, category_id=carreira.id)

        response = await client.get("/api/v1/categories", params={"include_count": "true"})

        data = api.assert_success(response)
        counts = {item["slug"]: item["post_count"] for item in data["data"]}
        assert counts == {"carreira": 2, "eventos": 0}


class TestTags:
    """Tests for GET /api/v1/tags."""

    @pytest.mark.asyncio
    async def test_lists_tags(self, client: AsyncClient, api, db_session_factory):
        async with db_session_factory() as session:
            session.add_all([
                Tag(name="Saúde", slug="saude"),
                Tag(name="Itamaraty", slug="itamaraty"),
            ])
            await session.commit()

        response = await client.get("/api/v1/tags")

        data = api.assert_success(response)
        assert sorted(item["slug"] for item in data["data"]) == ["itamaraty", "saude"]
