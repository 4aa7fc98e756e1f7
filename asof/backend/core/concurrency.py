"""
Concurrency Infrastructure.

Thread pool and semaphore management for blocking work done on behalf
of async request handlers. Pools are created lazily on first access and
shut down during application shutdown.

Blocking work in this application:
    - Pillow image inspection and thumbnail generation
    - SMTP delivery for the contact form
    - Upload writes and deletes on local storage

Semaphores are created per dependency to cap concurrent use of a
resource. Sizing is configured in config/settings/concurrency.yaml.

Usage:
    from asof.backend.core.concurrency import get_semaphore, run_blocking

    async with get_semaphore("image_processing"):
        info = await run_blocking(build_thumbnail, data, 300, 300, 80)
"""

import asyncio
import contextvars
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, TypeVar

from asof.backend.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_io_pool: ThreadPoolExecutor | None = None
_semaphores: dict[str, asyncio.Semaphore] = {}
_semaphore_capacities: dict[str, int] = {}


class TracedThreadPoolExecutor(ThreadPoolExecutor):
    """ThreadPoolExecutor that propagates contextvars to worker threads.

    The standard executor does not carry the structlog request context
    into worker threads; this subclass copies the current context before
    dispatching so log records keep their request_id.
    """

    def submit(self, fn, /, *args, **kwargs):
        ctx = contextvars.copy_context()
        return super().submit(ctx.run, fn, *args, **kwargs)


def get_io_pool() -> TracedThreadPoolExecutor:
    """Get the shared thread pool for blocking I/O operations."""
    global _io_pool
    if _io_pool is None:
        from asof.backend.core.config import get_app_config
        max_workers = get_app_config().concurrency.thread_pool.max_workers
        _io_pool = TracedThreadPoolExecutor(max_workers=max_workers)
        logger.info("Thread pool created", extra={"max_workers": max_workers})
    return _io_pool


async def run_blocking(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking callable on the shared I/O pool."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(get_io_pool(), partial(fn, *args, **kwargs))


def get_semaphore(name: str) -> asyncio.Semaphore:
    """Get a named semaphore for concurrency-limiting blocking work.

    The capacity is read from concurrency.yaml under `semaphores.<name>`.
    Unconfigured names default to 10.
    """
    if name not in _semaphores:
        from asof.backend.core.config import get_app_config
        semaphore_config = get_app_config().concurrency.semaphores
        capacity = getattr(semaphore_config, name, 10)
        _semaphores[name] = asyncio.Semaphore(capacity)
        _semaphore_capacities[name] = capacity
        logger.debug("Semaphore created", extra={"name": name, "capacity": capacity})
    return _semaphores[name]


def get_pool_status() -> dict[str, Any]:
    """Current pool and semaphore metrics for health reporting."""
    pools: dict[str, Any] = {}

    if _io_pool is not None:
        pools["thread_pool"] = {"max_workers": _io_pool._max_workers}

    if _semaphores:
        pools["semaphores"] = {
            name: {
                "capacity": _semaphore_capacities.get(name),
                "available": sem._value,
            }
            for name, sem in _semaphores.items()
        }

    return pools


async def shutdown_pools() -> None:
    """Shut down the pools gracefully. Called during application shutdown."""
    global _io_pool

    if _io_pool is not None:
        await asyncio.to_thread(_io_pool.shutdown, wait=True)
        logger.info("Thread pool shut down")
        _io_pool = None

    _semaphores.clear()
    _semaphore_capacities.clear()
