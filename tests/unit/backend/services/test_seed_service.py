"""
Unit Tests for the Seed Service.

Runs against the in-memory test database.
"""

import pytest
from sqlalchemy import func, select

from asof.backend.core.security import verify_password
from asof.backend.models import Category, Post, Tag, User
from asof.backend.models.enums import ContentStatus, UserRole
from asof.backend.services.seed import SeedReport, SeedService, load_seed_data

SEED_PASSWORD = "senha-inicial-123"

SMALL_SEED = {
    "users": [{"email": "admin@asof.org.br", "name": "Admin", "role": "SUPER_ADMIN"}],
    "categories": [{"name": "Eventos", "slug": "eventos", "order": 2}],
    "tags": [{"name": "Carreira", "slug": "carreira"}],
    "posts": [{
        "slug": "posse",
        "title": "Posse",
        "content": "palavra " * 450,
        "author": "admin@asof.org.br",
        "category": "eventos",
        "tags": ["carreira", "inexistente"],
        "published_days_ago": 3,
        "featured": True,
    }],
}


class TestLoadSeedData:
    def test_bundled_file(self):
        data = load_seed_data()

        assert {"users", "categories", "tags", "posts"} <= set(data)
        emails = {user["email"] for user in data["users"]}
        assert all(post["author"] in emails for post in data["posts"])


class TestSeedService:
    """Tests for SeedService.run."""

    @pytest.mark.asyncio
    async def test_creates_everything(self, db_session):
        report = await SeedService(db_session).run(SEED_PASSWORD, data=SMALL_SEED)
        await db_session.commit()

        assert report.users == ["admin@asof.org.br"]
        assert report.categories == ["eventos"]
        assert report.tags == ["carreira"]
        assert report.posts == ["posse"]

        user = (await db_session.execute(select(User))).scalar_one()
        assert user.role == UserRole.SUPER_ADMIN
        assert verify_password(SEED_PASSWORD, user.password_hash)

        post = (await db_session.execute(select(Post))).scalar_one()
        assert post.status == ContentStatus.PUBLISHED
        assert post.is_featured is True
        assert post.reading_time == 3
        assert post.published_at is not None
        assert [tag.slug for tag in post.tags] == ["carreira"]

    @pytest.mark.asyncio
    async def test_second_run_creates_nothing(self, db_session):
        service = SeedService(db_session)
        await service.run(SEED_PASSWORD, data=SMALL_SEED)

        report = await service.run("outra-senha", data=SMALL_SEED)

        assert report == SeedReport()
        assert report.created_anything is False
        user = (await db_session.execute(select(User))).scalar_one()
        assert verify_password(SEED_PASSWORD, user.password_hash)

    @pytest.mark.asyncio
    async def test_bundled_seed(self, db_session):
        data = load_seed_data()

        report = await SeedService(db_session).run(SEED_PASSWORD)

        assert report.created_anything is True
        counts = {
            model.__name__: (await db_session.execute(select(func.count()).select_from(model))).scalar_one()
            for model in (User, Category, Tag, Post)
        }
        assert counts == {
            "User": len(data["users"]),
            "Category": len(data["categories"]),
            "Tag": len(data["tags"]),
            "Post": len(data["posts"]),
        }
