"""
Unit Tests for the Request Rate Limiter.

Limits come from the real security.yaml; time is controlled by
patching time.monotonic.
"""

from unittest.mock import patch

import pytest

from asof.backend.core.rate_limiter import RateLimiter, get_rate_limiter


@pytest.fixture
def limiter() -> RateLimiter:
    return RateLimiter()


@pytest.fixture
def clock():
    """Controllable monotonic clock."""
    state = {"now": 1000.0}
    with patch("asof.backend.core.rate_limiter.time.monotonic", side_effect=lambda: state["now"]):
        yield state


class TestRateLimiter:
    """Tests for RateLimiter.check."""

    def test_allows_up_to_per_minute_limit(self, limiter, clock, app_config):
        per_minute = app_config.security.rate_limiting.contact.requests_per_minute

        results = [limiter.check("contact", "10.0.0.1") for _ in range(per_minute)]

        assert all(r.allowed for r in results)

    def test_blocks_after_per_minute_limit(self, limiter, clock, app_config):
        per_minute = app_config.security.rate_limiting.contact.requests_per_minute
        for _ in range(per_minute):
            limiter.check("contact", "10.0.0.1")

        result = limiter.check("contact", "10.0.0.1")

        assert result.allowed is False
        assert result.retry_after_seconds == 61

    def test_retry_after_shrinks_with_time(self, limiter, clock, app_config):
        per_minute = app_config.security.rate_limiting.contact.requests_per_minute
        for _ in range(per_minute):
            limiter.check("contact", "10.0.0.1")

        clock["now"] += 30
        result = limiter.check("contact", "10.0.0.1")

        assert result.allowed is False
        assert result.retry_after_seconds == 31

    def test_window_slides(self, limiter, clock, app_config):
        per_minute = app_config.security.rate_limiting.contact.requests_per_minute
        for _ in range(per_minute):
            limiter.check("contact", "10.0.0.1")

        clock["now"] += 61

        assert limiter.check("contact", "10.0.0.1").allowed is True

    def test_blocked_requests_are_not_counted(self, limiter, clock, app_config):
        per_minute = app_config.security.rate_limiting.contact.requests_per_minute
        for _ in range(per_minute + 5):
            limiter.check("contact", "10.0.0.1")

        clock["now"] += 61

        assert limiter.check("contact", "10.0.0.1").allowed is True

    def test_per_hour_limit(self, limiter, clock, app_config):
        limits = app_config.security.rate_limiting.contact
        allowed = 0
        for _ in range(limits.requests_per_hour + 1):
            if limiter.check("contact", "10.0.0.1").allowed:
                allowed += 1
            clock["now"] += 61

        assert allowed == limits.requests_per_hour

    def test_clients_are_independent(self, limiter, clock, app_config):
        per_minute = app_config.security.rate_limiting.contact.requests_per_minute
        for _ in range(per_minute):
            limiter.check("contact", "10.0.0.1")

        assert limiter.check("contact", "10.0.0.2").allowed is True

    def test_scopes_are_independent(self, limiter, clock, app_config):
        per_minute = app_config.security.rate_limiting.contact.requests_per_minute
        for _ in range(per_minute):
            limiter.check("contact", "10.0.0.1")

        assert limiter.check("login", "10.0.0.1").allowed is True

    def test_unknown_scope_is_unlimited(self, limiter, clock):
        assert all(limiter.check("newsletter", "10.0.0.1").allowed for _ in range(100))

    def test_reset_clears_counters(self, limiter, clock, app_config):
        per_minute = app_config.security.rate_limiting.contact.requests_per_minute
        for _ in range(per_minute):
            limiter.check("contact", "10.0.0.1")

        limiter.reset()

        assert limiter.check("contact", "10.0.0.1").allowed is True


class TestGetRateLimiter:
    def test_is_process_wide(self):
        assert get_rate_limiter() is get_rate_limiter()
