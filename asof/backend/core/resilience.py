"""
Circuit breakers and retry logging for outbound calls.

The SMTP relay behind the contact form is the only outbound dependency.
Calls to it are wrapped outside-in as:

    breaker.call_async -> tenacity retry (before_sleep=log_retry) -> semaphore -> call

Breakers made here are registered by dependency name so /health/detailed
can report their state through breaker_status().
"""

from datetime import timedelta
from typing import Any

import aiobreaker

from asof.backend.core.logging import get_logger

logger = get_logger(__name__)

STATE_EVENTS = {
    "open": "circuit_breaker_opened",
    "half-open": "circuit_breaker_half_open",
    "closed": "circuit_breaker_closed",
}

_breakers: dict[str, aiobreaker.CircuitBreaker] = {}


def _state_name(state: Any) -> str:
    return str(getattr(state, "value", state)).lower()


class ResilienceLogger(aiobreaker.CircuitBreakerListener):
    """Logs breaker transitions and failures with a `resilience_event` field."""

    def __init__(self, dependency: str) -> None:
        self.dependency = dependency

    def state_change(self, cb: aiobreaker.CircuitBreaker, old_state: Any, new_state: Any) -> None:
        new_name = _state_name(new_state)
        log = logger.error if new_name == "open" else logger.info
        log(
            f"Circuit breaker {self.dependency}: {old_state} -> {new_state}",
            extra={
                "resilience_event": STATE_EVENTS.get(new_name, f"circuit_breaker_{new_name}"),
                "dependency": self.dependency,
                "failure_count": cb.fail_counter,
            },
        )

    def failure(self, cb: aiobreaker.CircuitBreaker, exception: Exception) -> None:
        logger.warning(
            f"Circuit breaker {self.dependency}: failure recorded",
            extra={
                "resilience_event": "circuit_breaker_failure",
                "dependency": self.dependency,
                "failure_count": cb.fail_counter,
                "error": str(exception),
            },
        )


def log_retry(retry_state: Any) -> None:
    """tenacity `before_sleep` hook."""
    outcome = retry_state.outcome
    error = str(outcome.exception()) if outcome and outcome.failed else None
    fn_name = getattr(retry_state.fn, "__name__", "unknown")

    logger.warning(
        f"Retrying {fn_name} (attempt {retry_state.attempt_number})",
        extra={
            "resilience_event": "retry_attempt",
            "dependency": fn_name,
            "attempt": retry_state.attempt_number,
            "error": error,
        },
    )


def create_circuit_breaker(
    dependency: str,
    fail_max: int = 5,
    timeout_duration: int = 30,
) -> aiobreaker.CircuitBreaker:
    """
    Build a logged breaker for `dependency` and register it.

    Args:
        dependency: Name used in logs and in breaker_status()
        fail_max: Consecutive failures before the circuit opens
        timeout_duration: Seconds the circuit stays open before a trial call
    """
    breaker = aiobreaker.CircuitBreaker(
        fail_max=fail_max,
        timeout_duration=timedelta(seconds=timeout_duration),
        listeners=[ResilienceLogger(dependency)],
        name=dependency,
    )
    _breakers[dependency] = breaker
    return breaker


def breaker_status() -> dict[str, dict[str, Any]]:
    """State and failure count per registered breaker."""
    return {
        name: {
            "state": _state_name(breaker.current_state),
            "failure_count": breaker.fail_counter,
            "fail_max": breaker.fail_max,
        }
        for name, breaker in _breakers.items()
    }
