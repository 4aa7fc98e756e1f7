"""
Periodic jobs: publishing due SCHEDULED posts and purging expired sessions.

The job bodies in scheduled.py are plain coroutines over a database session,
so tests and the CLI can await them without Redis. The worker and scheduler
wrap them with taskiq at startup.
"""

from asof.backend.tasks.scheduled import (
    SCHEDULED_TASKS,
    cleanup_expired_sessions,
    publish_scheduled_posts,
    register_scheduled_tasks,
)

__all__ = [
    "SCHEDULED_TASKS",
    "cleanup_expired_sessions",
    "publish_scheduled_posts",
    "register_scheduled_tasks",
]
