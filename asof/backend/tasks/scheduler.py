"""
Cron scheduler for the site's periodic jobs.

Reads the cron labels that register_scheduled_tasks() attaches to each task
and enqueues them on the Redis broker; the worker executes them.

    python cli.py --service scheduler
    taskiq scheduler asof.backend.tasks.scheduler:scheduler

Exactly one scheduler may run per deployment, otherwise every scheduled post
is enqueued for publishing once per scheduler.
"""

from typing import TYPE_CHECKING

from asof.backend.core.logging import get_logger

if TYPE_CHECKING:
    from taskiq import TaskiqScheduler

logger = get_logger(__name__)

_scheduler: "TaskiqScheduler | None" = None


def get_scheduler() -> "TaskiqScheduler":
    global _scheduler
    if _scheduler is not None:
        return _scheduler

    from taskiq import TaskiqScheduler
    from taskiq.schedule_sources import LabelScheduleSource

    from asof.backend.tasks.broker import get_broker
    from asof.backend.tasks.scheduled import register_scheduled_tasks

    broker = get_broker()
    tasks = register_scheduled_tasks()
    _scheduler = TaskiqScheduler(broker=broker, sources=[LabelScheduleSource(broker)])
    logger.info("Scheduler ready", extra={"tasks": sorted(tasks)})
    return _scheduler


def __getattr__(name: str):
    # `taskiq scheduler module:scheduler` resolves this attribute on import
    if name == "scheduler":
        return get_scheduler()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
