#!/usr/bin/env python3

"""
Adaptive per-endpoint rate limiting for validation authorities.

Spaces calls to each authority endpoint by a minimum interval derived
from the current request rate. A 429 response lowers the rate and honours
``Retry-After``; a streak of successes slowly raises it back.
"""

import logging
import threading
import time
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "_default_"


@dataclass
class RateLimiterMetrics:
    """Snapshot of rate limiter activity."""

    total_requests: int = 0
    total_wait_time: float = 0.0
    rate_decreases: int = 0
    rate_increases: int = 0
    error_429_count: int = 0
    avg_wait_time: float = 0.0
    endpoint_rates: Optional[dict[str, float]] = None


@dataclass
class _EndpointState:
    """Mutable adaptive state for one endpoint."""

    current_rate: float
    success_count: int = 0
    last_call_time: float = 0.0
    penalty_until: float = 0.0
    total_requests: int = 0
    total_429s: int = 0


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """
    Parse a ``Retry-After`` header into seconds.

    Accepts delta-seconds or an HTTP date. Returns None when absent or
    unparseable.
    """
    if not value:
        return None
    value = value.strip()
    try:
        return max(float(value), 0.0)
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max((when - datetime.now(timezone.utc)).total_seconds(), 0.0)


class AdaptiveRateLimiter:
    """
    Thread-safe adaptive limiter keyed by endpoint.

    Every endpoint starts at ``rate_per_second`` and moves between
    ``min_rate`` and ``rate_per_second`` as responses come back.
    """

    def __init__(
        self,
        rate_per_second: float = 10.0,
        min_rate: float = 0.2,
        success_threshold: int = 5,
        backoff_factor: float = 0.5,
        recovery_factor: float = 1.1,
    ):
        if rate_per_second <= 0:
            raise ValueError(f"rate_per_second must be > 0, got {rate_per_second}")
        if min_rate <= 0 or min_rate > rate_per_second:
            raise ValueError(
                f"min_rate must be in (0, {rate_per_second}], got {min_rate}"
            )
        if success_threshold < 1:
            raise ValueError(f"success_threshold must be >= 1, got {success_threshold}")

        self.max_rate = rate_per_second
        self.min_rate = min_rate
        self.success_threshold = success_threshold
        self.backoff_factor = backoff_factor
        self.recovery_factor = recovery_factor

        self._lock = threading.Lock()
        self._states: dict[str, _EndpointState] = {}
        self._metrics = RateLimiterMetrics()

    def _state(self, endpoint: Optional[str]) -> tuple[str, _EndpointState]:
        name = endpoint or DEFAULT_ENDPOINT
        if name not in self._states:
            self._states[name] = _EndpointState(current_rate=self.max_rate)
        return name, self._states[name]

    def wait(self, endpoint: Optional[str] = None) -> float:
        """Block until the endpoint may be called again. Returns seconds waited."""
        with self._lock:
            _, state = self._state(endpoint)
            now = time.monotonic()
            next_allowed = max(
                state.penalty_until,
                state.last_call_time + 1.0 / state.current_rate,
            )
            wait_time = max(next_allowed - now, 0.0)
            # Reserve the slot before sleeping so concurrent callers queue up
            state.last_call_time = now + wait_time
            state.total_requests += 1
            self._metrics.total_requests += 1
            self._metrics.total_wait_time += wait_time

        if wait_time > 0:
            time.sleep(wait_time)
        return wait_time

    def on_429_error(
        self, endpoint: Optional[str] = None, retry_after: Optional[float] = None
    ) -> None:
        """Lower the endpoint's rate and apply any Retry-After cooldown."""
        with self._lock:
            name, state = self._state(endpoint)
            old_rate = state.current_rate
            state.current_rate = max(old_rate * self.backoff_factor, self.min_rate)
            state.success_count = 0
            state.total_429s += 1
            if retry_after:
                state.penalty_until = time.monotonic() + retry_after
            self._metrics.error_429_count += 1
            self._metrics.rate_decreases += 1

        logger.warning(
            "⚠️ 429 from '%s': rate %.2f -> %.2f req/s%s",
            name,
            old_rate,
            state.current_rate,
            f", cooling down {retry_after:.1f}s" if retry_after else "",
        )

    def on_success(self, endpoint: Optional[str] = None) -> None:
        """Count a success; raise the rate after a streak."""
        with self._lock:
            name, state = self._state(endpoint)
            state.success_count += 1
            if state.success_count < self.success_threshold:
                return
            state.success_count = 0
            old_rate = state.current_rate
            state.current_rate = min(old_rate * self.recovery_factor, self.max_rate)
            if state.current_rate > old_rate:
                self._metrics.rate_increases += 1
                logger.debug(
                    "Raised rate for '%s': %.2f -> %.2f req/s",
                    name,
                    old_rate,
                    state.current_rate,
                )

    def current_rate(self, endpoint: Optional[str] = None) -> float:
        with self._lock:
            return self._state(endpoint)[1].current_rate

    def get_metrics(self) -> RateLimiterMetrics:
        """Return a snapshot of the metrics."""
        with self._lock:
            total = self._metrics.total_requests
            return RateLimiterMetrics(
                total_requests=total,
                total_wait_time=self._metrics.total_wait_time,
                rate_decreases=self._metrics.rate_decreases,
                rate_increases=self._metrics.rate_increases,
                error_429_count=self._metrics.error_429_count,
                avg_wait_time=self._metrics.total_wait_time / total if total else 0.0,
                endpoint_rates={n: s.current_rate for n, s in self._states.items()},
            )

    def reset(self, endpoint: Optional[str] = None) -> None:
        """Forget state for one endpoint, or everything."""
        with self._lock:
            if endpoint:
                self._states.pop(endpoint, None)
            else:
                self._states.clear()
                self._metrics = RateLimiterMetrics()


# ============================================================================
# Unit Tests
# ============================================================================
def _create_module_tests():
    """Create unit tests for rate_limiter module."""
    from test_framework import TestSuite, suppress_logging

    suite = TestSuite("Rate Limiter Tests")

    def test_first_call_does_not_wait():
        rl = AdaptiveRateLimiter(rate_per_second=100.0)
        assert rl.wait("validate") == 0.0

    def test_429_backoff_and_floor():
        rl = AdaptiveRateLimiter(rate_per_second=4.0, min_rate=1.0)
        with suppress_logging():
            rl.on_429_error("validate")
            rl.on_429_error("validate")
            rl.on_429_error("validate")
        assert rl.current_rate("validate") == 1.0
        assert rl.get_metrics().error_429_count == 3

    def test_success_streak_recovers():
        rl = AdaptiveRateLimiter(rate_per_second=4.0, min_rate=1.0, success_threshold=2)
        with suppress_logging():
            rl.on_429_error("validate")
        for _ in range(2):
            rl.on_success("validate")
        assert rl.current_rate("validate") > 2.0

    def test_parse_retry_after():
        assert parse_retry_after("3") == 3.0
        assert parse_retry_after(None) is None
        assert parse_retry_after("soon") is None

    suite.add_test("First call does not wait", test_first_call_does_not_wait)
    suite.add_test("429 backoff and floor", test_429_backoff_and_floor)
    suite.add_test("Success streak recovers", test_success_streak_recovers)
    suite.add_test("parse_retry_after", test_parse_retry_after)

    return suite
