"""
FastAPI Application Entry Point.

One ASGI app serves the JSON API, the health endpoints, the public site
and the admin pages, plus static assets and uploaded media.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from asof.backend.api import health
from asof.backend.api.v1 import router as api_v1_router
from asof.backend.core.concurrency import shutdown_pools
from asof.backend.core.config import get_app_config
from asof.backend.core.database import dispose_engine
from asof.backend.core.exception_handlers import register_exception_handlers
from asof.backend.core.logging import get_logger, setup_logging
from asof.backend.core.middleware import (
    RequestContextMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
from asof.backend.core.storage import get_storage
from asof.frontend.routes import router as frontend_router
from asof.frontend.templating import STATIC_DIR

logger = get_logger(__name__)

_app: FastAPI | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    app_config = get_app_config()
    setup_logging(level=app_config.logging.level)

    if app_config.features.security_startup_checks_enabled:
        from asof.backend.core.startup_checks import run_startup_checks
        run_startup_checks()

    logger.info(
        "Application starting",
        extra={
            "app_name": app_config.application.name,
            "env": app_config.application.environment,
        },
    )
    yield
    logger.info("Application shutting down")
    await shutdown_pools()
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app_config = get_app_config()
    app_settings = app_config.application
    docs_enabled = app_settings.docs_enabled and app_settings.debug

    app = FastAPI(
        title=app_settings.name,
        description=app_settings.description,
        version=app_settings.version,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )

    if app_config.features.security_headers_enabled:
        app.add_middleware(SecurityHeadersMiddleware, headers_config=app_config.security.headers)

    app.add_middleware(
        RequestSizeLimitMiddleware,
        max_body_size=app_config.security.request_limits.max_body_size_bytes,
    )

    app.add_middleware(
        RequestContextMiddleware,
        log_requests=app_config.features.api_request_logging,
    )

    cors_origins = app_settings.cors.origins
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=app_config.security.cors.allow_methods,
            allow_headers=app_config.security.cors.allow_headers,
        )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(api_v1_router, prefix=app_settings.api_prefix)
    app.include_router(frontend_router)

    _mount_static(app)

    return app


def _mount_static(app: FastAPI) -> None:
    """Serve site assets and uploaded media."""
    storage = get_storage()
    storage.root.mkdir(parents=True, exist_ok=True)

    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")
    app.mount(storage.public_url_prefix, StaticFiles(directory=storage.root), name="uploads")


def get_app() -> FastAPI:
    """
    Get the application instance (lazy initialization).

    This function creates the app on first call and caches it.
    Use this instead of importing `app` directly to avoid
    import-time configuration errors.
    """
    global _app
    if _app is None:
        _app = create_app()
    return _app


# For uvicorn: `uvicorn asof.backend.main:app`
def __getattr__(name: str) -> FastAPI:
    """Support lazy access to `app` for uvicorn compatibility."""
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
