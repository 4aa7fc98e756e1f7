"""
Redis broker for the periodic jobs.

Queue name and result expiry come from database.yaml (redis.broker).

    python cli.py --service worker
    taskiq worker asof.backend.tasks.broker:broker
"""

from typing import TYPE_CHECKING

from asof.backend.core.config import get_app_config, get_redis_url
from asof.backend.core.logging import get_logger, log_with_source

if TYPE_CHECKING:
    from taskiq_redis import ListQueueBroker

logger = get_logger(__name__)

_broker: "ListQueueBroker | None" = None


def _build_broker() -> "ListQueueBroker":
    from taskiq_redis import ListQueueBroker, RedisAsyncResultBackend

    redis_url = get_redis_url()
    config = get_app_config().database.redis.broker

    broker = ListQueueBroker(url=redis_url, queue_name=config.queue_name).with_result_backend(
        RedisAsyncResultBackend(redis_url=redis_url, result_ex_time=config.result_expiry_seconds)
    )

    @broker.on_event("startup")
    async def on_startup() -> None:
        from asof.backend.core.logging import setup_logging

        setup_logging()
        log_with_source(logger, "tasks", "info", "Worker started", queue=config.queue_name)

    @broker.on_event("shutdown")
    async def on_shutdown() -> None:
        from asof.backend.core.database import dispose_engine

        await dispose_engine()
        log_with_source(logger, "tasks", "info", "Worker stopped")

    return broker


def get_broker() -> "ListQueueBroker":
    global _broker
    if _broker is None:
        _broker = _build_broker()
    return _broker


def __getattr__(name: str):
    # `taskiq worker module:broker` needs the tasks registered before it starts consuming
    if name == "broker":
        from asof.backend.tasks.scheduled import register_scheduled_tasks

        broker = get_broker()
        register_scheduled_tasks()
        return broker
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
