"""
FastAPI Dependencies.

Shared dependencies for request handling: database session, request
id, client address, the logged-in user and role guards, and the
storage, mailer and news store singletons (overridable in tests).
"""

import uuid
from typing import Annotated, Callable

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from asof.backend.content.news import NewsStore, get_news_store
from asof.backend.core.config import get_app_config
from asof.backend.core.database import get_db_session
from asof.backend.core.exceptions import ApplicationError
from asof.backend.core.mailer import SmtpMailer, get_mailer
from asof.backend.core.storage import LocalStorage, get_storage
from asof.backend.models.enums import EDITORIAL_ROLES, UserRole
from asof.backend.models.user import User
from asof.backend.services.auth import AuthService


# Type alias for database session dependency
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


async def get_request_id(request: Request, x_request_id: str | None = Header(None)) -> str:
    """
    Request ID set by RequestContextMiddleware, or the header value.

    Used for request tracing and correlation.
    """
    state_id = getattr(request.state, "request_id", None)
    return state_id or x_request_id or str(uuid.uuid4())


RequestId = Annotated[str, Depends(get_request_id)]


def get_client_ip(request: Request) -> str:
    """Client address, honouring X-Forwarded-For and X-Real-IP from the proxy."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


ClientIp = Annotated[str, Depends(get_client_ip)]


def get_session_token(request: Request) -> str | None:
    cookie_name = get_app_config().security.session.cookie_name
    return request.cookies.get(cookie_name)


SessionToken = Annotated[str | None, Depends(get_session_token)]


async def get_current_user(db: DbSession, token: SessionToken) -> User:
    """
    The user owning the session cookie.

    Raises:
        AuthenticationError: No valid session (401, or a login redirect on pages)
        AuthorizationError: Account not active
    """
    return await AuthService(db).validate_session(token)


CurrentUser = Annotated[User, Depends(get_current_user)]


async def get_optional_user(db: DbSession, token: SessionToken) -> User | None:
    """Like get_current_user, but anonymous visitors get None."""
    if not token:
        return None
    try:
        return await AuthService(db).validate_session(token)
    except ApplicationError:
        return None


OptionalUser = Annotated[User | None, Depends(get_optional_user)]


def require_roles(*roles: UserRole) -> Callable:
    """
    Dependency factory restricting an endpoint to the given roles.

    Usage:
        @router.get("/admin", dependencies=[Depends(require_roles(UserRole.ADMIN))])
    """
    allowed = frozenset(roles)

    async def _require(db: DbSession, token: SessionToken) -> User:
        return await AuthService(db).validate_session(token, required_roles=allowed)

    return _require


EditorialUser = Annotated[User, Depends(require_roles(*EDITORIAL_ROLES))]

Storage = Annotated[LocalStorage, Depends(get_storage)]
Mailer = Annotated[SmtpMailer, Depends(get_mailer)]
News = Annotated[NewsStore, Depends(get_news_store)]
