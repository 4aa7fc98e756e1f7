"""
Request Rate Limiter.

Config-driven, per-client, per-scope rate limiting for abuse-prone
endpoints (login, contact form). Reads limits from
config/settings/security.yaml under rate_limiting.<scope>.
Uses in-memory storage; each worker process keeps its own counters.
"""

import time
from collections import defaultdict

from asof.backend.core.config import get_app_config
from asof.backend.core.logging import get_logger

logger = get_logger(__name__)


class RateLimitResult:
    """Result of a rate limit check."""

    def __init__(self, allowed: bool, retry_after_seconds: int = 0) -> None:
        self.allowed = allowed
        self.retry_after_seconds = retry_after_seconds


class RateLimiter:
    """
    Sliding-window limiter keyed by (scope, client).

    Each scope has its own requests_per_minute and requests_per_hour.
    Unknown scopes are not limited.
    """

    def __init__(self) -> None:
        self._minute_requests: dict[str, list[float]] = defaultdict(list)
        self._hour_requests: dict[str, list[float]] = defaultdict(list)

    def check(self, scope: str, client_id: str) -> RateLimitResult:
        """
        Record a request and report whether it is within limits.

        Args:
            scope: Limit scope (login, contact)
            client_id: Client identifier, usually the remote IP

        Returns:
            RateLimitResult indicating whether the request is allowed
        """
        limits = self._get_limits(scope)
        if limits is None:
            return RateLimitResult(allowed=True)

        now = time.monotonic()
        key = f"{scope}:{client_id}"

        result = self._check_window(
            key, self._minute_requests, now, 60, limits["requests_per_minute"],
        )
        if not result.allowed:
            logger.warning(
                "Rate limit exceeded (per-minute)",
                extra={"scope": scope, "client": client_id},
            )
            return result

        result = self._check_window(
            key, self._hour_requests, now, 3600, limits["requests_per_hour"],
        )
        if not result.allowed:
            logger.warning(
                "Rate limit exceeded (per-hour)",
                extra={"scope": scope, "client": client_id},
            )
            return result

        self._minute_requests[key].append(now)
        self._hour_requests[key].append(now)
        return RateLimitResult(allowed=True)

    def reset(self) -> None:
        self._minute_requests.clear()
        self._hour_requests.clear()

    def _get_limits(self, scope: str) -> dict | None:
        rate_limiting = get_app_config().security.rate_limiting
        scope_config = getattr(rate_limiting, scope, None)
        return scope_config.model_dump() if scope_config else None

    def _check_window(
        self,
        key: str,
        store: dict[str, list[float]],
        now: float,
        window_seconds: int,
        max_requests: int,
    ) -> RateLimitResult:
        cutoff = now - window_seconds
        store[key] = [ts for ts in store[key] if ts > cutoff]

        if len(store[key]) >= max_requests:
            oldest = min(store[key]) if store[key] else now
            retry_after = int(window_seconds - (now - oldest)) + 1
            return RateLimitResult(allowed=False, retry_after_seconds=retry_after)

        return RateLimitResult(allowed=True)


_rate_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Get or create the process-wide rate limiter."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter()
    return _rate_limiter
