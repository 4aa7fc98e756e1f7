"""
Seed Service.

Loads the initial users, categories, tags and sample posts from
asof/backend/data/seed.yaml. Existing rows (matched by email or slug)
are left untouched, so the seed can run on every deploy.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from sqlalchemy.ext.asyncio import AsyncSession

from asof.backend.core.security import hash_password
from asof.backend.core.utils import reading_time_minutes, utc_now
from asof.backend.models.enums import ContentStatus, UserRole, UserStatus
from asof.backend.repositories.post import PostRepository
from asof.backend.repositories.taxonomy import CategoryRepository, TagRepository
from asof.backend.repositories.user import UserRepository
from asof.backend.services.base import BaseService

SEED_FILE = Path(__file__).resolve().parent.parent / "data" / "seed.yaml"


@dataclass
class SeedReport:
    users: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    posts: list[str] = field(default_factory=list)

    @property
    def created_anything(self) -> bool:
        return bool(self.users or self.categories or self.tags or self.posts)


def load_seed_data(path: Path = SEED_FILE) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


class SeedService(BaseService):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.users = UserRepository(session)
        self.categories = CategoryRepository(session)
        self.tags = TagRepository(session)
        self.posts = PostRepository(session)

    async def run(self, password: str, data: dict[str, Any] | None = None) -> SeedReport:
        """
        Create whatever is missing.

        Args:
            password: Initial password for every seeded user
            data: Seed data; defaults to the bundled seed.yaml

        Returns:
            SeedReport listing the emails and slugs that were created
        """
        data = data if data is not None else load_seed_data()
        report = SeedReport()
        password_hash = hash_password(password)

        users_by_email = {}
        for entry in data.get("users", []):
            user = await self.users.get_by_email(entry["email"])
            if user is None:
                user = await self.users.create(
                    email=entry["email"],
                    name=entry["name"],
                    role=UserRole(entry["role"]),
                    status=UserStatus.ACTIVE,
                    bio=entry.get("bio"),
                    password_hash=password_hash,
                )
                report.users.append(user.email)
            users_by_email[user.email] = user

        categories_by_slug = {}
        for entry in data.get("categories", []):
            category = await self.categories.get_by_slug(entry["slug"])
            if category is None:
                category = await self.categories.create(
                    name=entry["name"],
                    slug=entry["slug"],
                    description=entry.get("description"),
                    color=entry.get("color"),
                    icon=entry.get("icon"),
                    order=entry.get("order", 0),
                    is_visible=entry.get("is_visible", True),
                )
                report.categories.append(category.slug)
            categories_by_slug[category.slug] = category

        tags_by_slug = {}
        for entry in data.get("tags", []):
            tag = await self.tags.get_by_slug(entry["slug"])
            if tag is None:
                tag = await self.tags.create(
                    name=entry["name"],
                    slug=entry["slug"],
                    color=entry.get("color"),
                )
                report.tags.append(tag.slug)
            tags_by_slug[tag.slug] = tag

        now = utc_now()
        for entry in data.get("posts", []):
            if await self.posts.slug_exists(entry["slug"]):
                continue
            author = users_by_email[entry["author"]]
            category = categories_by_slug.get(entry.get("category"))
            post = await self.posts.create(
                slug=entry["slug"],
                title=entry["title"],
                excerpt=entry.get("excerpt"),
                content=entry["content"],
                status=ContentStatus.PUBLISHED,
                published_at=now - timedelta(days=entry.get("published_days_ago", 0)),
                is_featured=entry.get("featured", False),
                reading_time=reading_time_minutes(entry["content"]),
                meta_title=entry.get("meta_title"),
                meta_description=entry.get("meta_description"),
                author_id=author.id,
                category_id=category.id if category else None,
                tags=[tags_by_slug[slug] for slug in entry.get("tags", []) if slug in tags_by_slug],
            )
            report.posts.append(post.slug)

        self._log_operation(
            "Seed completed",
            users=len(report.users),
            categories=len(report.categories),
            tags=len(report.tags),
            posts=len(report.posts),
        )
        return report
