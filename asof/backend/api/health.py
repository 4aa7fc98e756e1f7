"""
Health Check Endpoints.

Provides liveness, readiness, and detailed health checks.

Endpoints:
- /health: Liveness check (process running)
- /health/ready: Readiness check (database and Redis reachable)
- /health/detailed: Component-by-component status (for debugging)
"""

import asyncio
from typing import Any

import redis.asyncio as redis
from fastapi import APIRouter, HTTPException
from sqlalchemy import text

from asof.backend.core.concurrency import get_pool_status
from asof.backend.core.config import get_app_config, get_redis_url
from asof.backend.core.database import get_session_factory
from asof.backend.core.dependencies import OptionalUser
from asof.backend.core.exceptions import AuthenticationError, AuthorizationError
from asof.backend.core.logging import get_logger
from asof.backend.core.resilience import breaker_status
from asof.backend.core.utils import utc_now
from asof.backend.models.enums import MANAGER_ROLES

router = APIRouter()
logger = get_logger(__name__)


async def check_database() -> dict[str, Any]:
    """
    Check database connectivity.

    Returns:
        Dict with status, latency, and optional error message
    """
    try:
        start = utc_now()
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
        latency_ms = int((utc_now() - start).total_seconds() * 1000)
        return {"status": "healthy", "latency_ms": latency_ms}
    except Exception as e:
        logger.warning("Database health check failed", extra={"error": str(e)})
        return {"status": "unhealthy", "error": str(e)}


async def check_redis() -> dict[str, Any]:
    """
    Check Redis connectivity (task broker).

    Returns:
        Dict with status, latency, and optional error message
    """
    try:
        start = utc_now()
        client = redis.from_url(get_redis_url())
        try:
            await client.ping()
        finally:
            await client.aclose()
        latency_ms = int((utc_now() - start).total_seconds() * 1000)
        return {"status": "healthy", "latency_ms": latency_ms}
    except Exception as e:
        logger.warning("Redis health check failed", extra={"error": str(e)})
        return {"status": "unhealthy", "error": str(e)}


async def _run_checks(timeout: float) -> dict[str, dict[str, Any]]:
    """Run the dependency checks in parallel under one timeout."""
    db_result: dict[str, Any] = {"status": "error", "error": "check did not run"}
    redis_result: dict[str, Any] = {"status": "error", "error": "check did not run"}

    try:
        async with asyncio.timeout(timeout):
            async with asyncio.TaskGroup() as tg:
                db_task = tg.create_task(check_database())
                redis_task = tg.create_task(check_redis())
            db_result = db_task.result()
            redis_result = redis_task.result()
    except TimeoutError:
        logger.warning("Health checks timed out", extra={"timeout_seconds": timeout})
        db_result = {"status": "unhealthy", "error": "timeout"}
        redis_result = {"status": "unhealthy", "error": "timeout"}

    return {"database": db_result, "redis": redis_result}


@router.get("/health")
async def health_check() -> dict[str, str]:
    """
    Liveness check.

    Returns 200 if the process is running.
    No dependency checks - this endpoint should always respond quickly.
    """
    return {"status": "healthy"}


@router.get("/health/ready")
async def readiness_check() -> dict[str, Any]:
    """
    Readiness check.

    Returns 503 if the database or Redis is unhealthy.
    """
    timeout = get_app_config().observability.health_checks.ready_timeout_seconds
    checks = await _run_checks(timeout)

    unhealthy_checks = [
        name for name, check in checks.items()
        if check.get("status") != "healthy"
    ]

    if unhealthy_checks:
        logger.warning(
            "Readiness check failed",
            extra={"unhealthy": unhealthy_checks, "checks": checks},
        )
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "checks": checks,
                "timestamp": utc_now().isoformat(),
            },
        )

    return {
        "status": "healthy",
        "checks": checks,
        "timestamp": utc_now().isoformat(),
    }


@router.get("/health/detailed")
async def detailed_health_check(user: OptionalUser) -> dict[str, Any]:
    """
    Detailed health check.

    Application info, dependency checks and pool metrics. Requires an
    admin session when observability.yaml health_checks.detailed_auth_required
    is true.
    """
    app_config = get_app_config()
    if app_config.observability.health_checks.detailed_auth_required:
        if user is None:
            raise AuthenticationError("Não autenticado")
        if user.role not in MANAGER_ROLES:
            raise AuthorizationError("Permissão insuficiente")

    checks = await _run_checks(app_config.observability.health_checks.ready_timeout_seconds)
    app_settings = app_config.application

    statuses = [check.get("status") for check in checks.values()]
    overall_status = "healthy" if all(s == "healthy" for s in statuses) else "unhealthy"

    return {
        "status": overall_status,
        "application": {
            "name": app_settings.name,
            "env": app_settings.environment,
            "debug": app_settings.debug,
            "version": app_settings.version,
        },
        "checks": checks,
        "pools": get_pool_status(),
        "circuit_breakers": breaker_status(),
        "timestamp": utc_now().isoformat(),
    }
