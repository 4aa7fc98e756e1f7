"""
Scheduled Background Tasks.

Time-based jobs run by the taskiq scheduler. The functions are plain
async functions; register_scheduled_tasks() wraps them with broker.task
and their cron schedule. Tests call them directly without Redis.

    publish_scheduled_posts   every minute
    cleanup_expired_sessions  daily at 03:00 UTC
"""

from typing import Any

from asof.backend.core.config import get_app_config
from asof.backend.core.database import session_scope
from asof.backend.core.logging import get_logger, log_with_source
from asof.backend.core.utils import utc_now
from asof.backend.services.auth import AuthService
from asof.backend.services.post import PostService

logger = get_logger(__name__)


async def publish_scheduled_posts() -> dict[str, Any]:
    """Publish SCHEDULED posts whose scheduled_for time has passed."""
    if not get_app_config().features.content_scheduled_publishing_enabled:
        logger.debug("Scheduled publishing disabled")
        return {"status": "skipped", "published": 0}

    async with session_scope() as session:
        published = await PostService(session).publish_due_scheduled()

    result = {
        "status": "completed",
        "published": published,
        "completed_at": utc_now().isoformat(),
    }
    if published:
        log_with_source(logger, "tasks", "info", "Scheduled posts published", **result)
    return result


async def cleanup_expired_sessions() -> dict[str, Any]:
    """Delete login sessions past their expiry."""
    async with session_scope() as session:
        removed = await AuthService(session).cleanup_expired_sessions()

    result = {
        "status": "completed",
        "sessions_removed": removed,
        "completed_at": utc_now().isoformat(),
    }
    log_with_source(logger, "tasks", "info", "Expired sessions cleanup completed", **result)
    return result


# =============================================================================
# Schedule Configuration
# =============================================================================

SCHEDULED_TASKS = {
    "publish_scheduled_posts": {
        "function": publish_scheduled_posts,
        "schedule": [{"cron": "* * * * *"}],
        "retry_on_error": False,
        "description": "Publish posts whose scheduled time has passed, every minute",
    },
    "cleanup_expired_sessions": {
        "function": cleanup_expired_sessions,
        "schedule": [{"cron": "0 3 * * *"}],
        "retry_on_error": True,
        "max_retries": 2,
        "description": "Delete expired admin sessions daily at 03:00 UTC",
    },
}

_registered: dict[str, Any] = {}


def register_scheduled_tasks() -> dict[str, Any]:
    """
    Register scheduled task functions with the Taskiq broker.

    Safe to call more than once; tasks are only registered the first time.

    Returns:
        Dict mapping task names to registered task objects
    """
    if _registered:
        return _registered

    from asof.backend.tasks.broker import get_broker

    broker = get_broker()

    for task_name, config in SCHEDULED_TASKS.items():
        task_kwargs = {
            "task_name": task_name,
            "schedule": config["schedule"],
            "retry_on_error": config.get("retry_on_error", False),
        }
        if "max_retries" in config:
            task_kwargs["max_retries"] = config["max_retries"]

        _registered[task_name] = broker.task(**task_kwargs)(config["function"])

    logger.info(
        "Scheduled tasks registered",
        extra={"task_count": len(_registered), "tasks": list(_registered)},
    )
    return _registered
