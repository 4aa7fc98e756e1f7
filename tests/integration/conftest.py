"""
Integration Test Fixtures.

The full application against a real database (in-memory SQLite by
default), with storage, mail and file news pointed at test doubles.
These fixtures build on the root conftest.py database fixtures.
"""

from collections.abc import AsyncGenerator, Callable
from datetime import timedelta
from pathlib import Path
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from asof.backend.content.news import NewsStore, get_news_store
from asof.backend.core.config import get_app_config
from asof.backend.core.database import get_db_session
from asof.backend.core.mailer import get_mailer
from asof.backend.core.security import generate_session_token, hash_password
from asof.backend.core.storage import LocalStorage, get_storage
from asof.backend.core.utils import utc_now
from asof.backend.models import Category, Post, Session, Tag, User
from asof.backend.models.enums import ContentStatus, UserRole, UserStatus

TEST_PASSWORD = "senha-de-teste-123"


@pytest.fixture(scope="session")
def password_hash() -> str:
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


# =============================================================================
# Test Doubles
# =============================================================================


@pytest.fixture
def storage(tmp_path: Path) -> LocalStorage:
    return LocalStorage(tmp_path / "uploads", get_app_config().storage.public_url_prefix)


@pytest.fixture
def news_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "noticias"
    directory.mkdir()
    return directory


@pytest.fixture
def news_store(news_dir: Path) -> NewsStore:
    return NewsStore(news_dir, ttl_seconds=0)


@pytest.fixture
def write_news(news_dir: Path) -> Callable[..., Path]:
    """
    Write a Markdown news file.

    Usage:
        write_news("assembleia", title="Assembleia", date="2025-03-10", body="Texto")
    """

    def _write(slug: str, body: str = "Corpo da notícia.", **front_matter: Any) -> Path:
        header = "\n".join(f"{key}: {value!r}" if isinstance(value, str) else f"{key}: {value}"
                           for key, value in front_matter.items())
        path = news_dir / f"{slug}.md"
        path.write_text(f"---\n{header}\n---\n{body}\n", encoding="utf-8")
        return path

    return _write


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
async def client(
    db_session_factory: async_sessionmaker[AsyncSession],
    storage: LocalStorage,
    recording_mailer,
    news_store: NewsStore,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client for the whole application.

    Each request gets its own session from the test engine, committed
    when the handler returns, exactly like get_db_session.

    Usage:
        async def test_health_endpoint(client: AsyncClient):
            response = await client.get("/health")
            assert response.status_code == 200
    """

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with db_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    from asof.backend.main import create_app

    app = create_app()
    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_mailer] = lambda: recording_mailer
    app.dependency_overrides[get_news_store] = lambda: news_store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Data Fixtures
# =============================================================================


@pytest.fixture
def make_user(
    db_session_factory: async_sessionmaker[AsyncSession],
    password_hash: str,
) -> Callable[..., Any]:
    """Create and commit a user. The password is always TEST_PASSWORD."""

    async def _make(
        email: str,
        role: UserRole = UserRole.ADMIN,
        status: UserStatus = UserStatus.ACTIVE,
        name: str | None = None,
        **fields: Any,
    ) -> User:
        async with db_session_factory() as session:
            user = User(
                email=email,
                name=name or email.split("@")[0].title(),
                password_hash=password_hash,
                role=role,
                status=status,
                **fields,
            )
            session.add(user)
            await session.commit()
            return user

    return _make


@pytest.fixture
def login_as(
    client: AsyncClient,
    db_session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[User], Any]:
    """
    Open a session for a user directly in the database and put its
    token in the client's cookie jar.
    """
    cookie_name = get_app_config().security.session.cookie_name

    async def _login(user: User) -> str:
        token, token_hash = generate_session_token()
        async with db_session_factory() as session:
            session.add(Session(
                user_id=user.id,
                token_hash=token_hash,
                expires_at=utc_now() + timedelta(days=1),
            ))
            await session.commit()
        client.cookies.set(cookie_name, token)
        return token

    return _login


@pytest.fixture
async def admin_user(make_user) -> User:
    return await make_user("admin@asof.org.br", role=UserRole.ADMIN, name="Admin ASOF")


@pytest.fixture
async def author_user(make_user) -> User:
    return await make_user("autor@asof.org.br", role=UserRole.AUTHOR, name="Autor ASOF")


@pytest.fixture
async def as_admin(admin_user: User, login_as) -> User:
    await login_as(admin_user)
    return admin_user


@pytest.fixture
async def as_author(author_user: User, login_as) -> User:
    await login_as(author_user)
    return author_user


@pytest.fixture
def make_post(db_session_factory: async_sessionmaker[AsyncSession]) -> Callable[..., Any]:
    """Insert a post row directly, bypassing the service rules."""

    async def _make(
        author: User,
        slug: str,
        title: str | None = None,
        status: ContentStatus = ContentStatus.PUBLISHED,
        content: str = "Conteúdo do post em **Markdown**.",
        **fields: Any,
    ) -> Post:
        if status == ContentStatus.PUBLISHED:
            fields.setdefault("published_at", utc_now())
        async with db_session_factory() as session:
            post = Post(
                title=title or slug.replace("-", " ").title(),
                slug=slug,
                content=content,
                status=status,
                author_id=author.id,
                **fields,
            )
            session.add(post)
            await session.commit()
            return post

    return _make


@pytest.fixture
async def category(db_session_factory: async_sessionmaker[AsyncSession]) -> Category:
    async with db_session_factory() as session:
        item = Category(name="Carreira", slug="carreira", color="#1a3d6d", order=1, is_visible=True)
        session.add(item)
        await session.commit()
        return item


@pytest.fixture
async def tag(db_session_factory: async_sessionmaker[AsyncSession]) -> Tag:
    async with db_session_factory() as session:
        item = Tag(name="Itamaraty", slug="itamaraty")
        session.add(item)
        await session.commit()
        return item


# =============================================================================
# API Response Assertion Helpers
# =============================================================================


class ApiAssertions:
    """Helper class for API response assertions."""

    @staticmethod
    def assert_success(response: Any, expected_status: int = 200) -> dict[str, Any]:
        """
        Assert API response is successful.

        Returns:
            Response JSON data
        """
        assert response.status_code == expected_status, (
            f"Expected status {expected_status}, got {response.status_code}: "
            f"{response.text}"
        )
        data = response.json()
        assert data.get("success") is True, f"Response not successful: {data}"
        return data

    @staticmethod
    def assert_error(
        response: Any,
        expected_status: int,
        expected_code: str | None = None,
    ) -> dict[str, Any]:
        """
        Assert API response is an error in the standard envelope.

        Returns:
            Response JSON data
        """
        assert response.status_code == expected_status, (
            f"Expected status {expected_status}, got {response.status_code}: "
            f"{response.text}"
        )
        data = response.json()
        assert data.get("success") is False, f"Response should be error: {data}"
        assert data.get("error") is not None, f"Missing error details: {data}"

        if expected_code:
            actual_code = data["error"].get("code")
            assert actual_code == expected_code, (
                f"Expected error code {expected_code}, got {actual_code}"
            )

        return data

    @staticmethod
    def assert_validation_error(
        response: Any,
        field: str | None = None,
    ) -> dict[str, Any]:
        """Assert a 422 request validation error, optionally for one field."""
        data = ApiAssertions.assert_error(response, 422, "VAL_REQUEST_INVALID")

        if field:
            errors = data["error"].get("details", {}).get("validation_errors", [])
            fields = [e.get("field", "") for e in errors]
            assert any(field in f for f in fields), (
                f"Expected validation error for field '{field}', "
                f"got errors for: {fields}"
            )

        return data


@pytest.fixture
def api() -> ApiAssertions:
    """Provide API assertion helpers."""
    return ApiAssertions()
