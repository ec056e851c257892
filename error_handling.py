#!/usr/bin/env python3

"""
Error Handling Framework for the mention tally pipeline.

Provides the exception hierarchy, the circuit breaker that guards the
external validation authority, and the run-level retry decorator.

Pipeline-level failure policy: nothing that happens to a single post or
candidate is fatal. Only an empty corpus or a corpus without an
identifiable root is raised to the caller.
"""

import logging
import random
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import wraps
from typing import Any, Callable, Optional, ParamSpec, TypeVar

logger = logging.getLogger(__name__)

# Type variables for decorators
P = ParamSpec("P")
R = TypeVar("R")


# === EXCEPTION HIERARCHY ===


class FrameworkError(Exception):
    """Base exception class for all tally errors."""

    pass


class RetryableError(FrameworkError):
    """Exception that indicates the operation can be retried."""

    def __init__(
        self, message: str = "Operation can be retried", **kwargs: Any
    ) -> None:
        super().__init__(message)
        self.message = message
        self.retry_after: Optional[float] = kwargs.get("retry_after")
        self.context: dict[str, Any] = kwargs.get("context", {})


class FatalError(FrameworkError):
    """Exception that indicates the operation should not be retried."""

    def __init__(self, message: str = "Fatal error occurred", **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = kwargs.get("context", {})


class ValidationUnavailableError(RetryableError):
    """The validation authority was unreachable or returned a malformed result."""

    def __init__(
        self, message: str = "Validation authority unavailable", **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)
        self.authority: str = kwargs.get("authority", "unknown")
        self.status_code: Optional[int] = kwargs.get("status_code")


class IncompleteRunError(RetryableError):
    """A run finished but some candidates could not be validated."""

    def __init__(
        self, message: str = "Run left candidates unvalidated", **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)
        self.result: Any = kwargs.get("result")
        self.failures: int = kwargs.get("failures", 0)


class CacheEntryCorruptError(FatalError):
    """A stored validation entry failed schema validation."""

    def __init__(self, message: str = "Corrupt ledger entry", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.key: Optional[str] = kwargs.get("key")


class CorpusError(FatalError):
    """The input corpus cannot be analysed at all."""

    pass


class EmptyCorpusError(CorpusError):
    """The input corpus has no posts."""

    def __init__(self, message: str = "Corpus contains no posts", **kwargs: Any):
        super().__init__(message, **kwargs)


class RootNotFoundError(CorpusError):
    """No post in the corpus can serve as the thread root."""

    def __init__(self, message: str = "No root post could be identified", **kwargs: Any):
        super().__init__(message, **kwargs)


class ConfigurationError(FatalError):
    """Exception for configuration errors."""

    def __init__(self, message: str = "Configuration error occurred", **kwargs: Any):
        super().__init__(message, **kwargs)
        self.config_section: Optional[str] = kwargs.get("config_section")


# === CIRCUIT BREAKER ===


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "CLOSED"  # Normal operation
    OPEN = "OPEN"  # Failing, calls rejected
    HALF_OPEN = "HALF_OPEN"  # Testing if service recovered


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""

    failure_threshold: int = 5  # Number of failures before opening
    recovery_timeout: int = 60  # Seconds before attempting recovery
    success_threshold: int = 2  # Successes needed to close from half-open


class CircuitBreakerOpenError(ValidationUnavailableError):
    """Raised when the circuit is open and the call was not attempted."""

    pass


class CircuitBreaker:
    """
    Circuit Breaker for the validation authority.
    Opens after a threshold of consecutive failures so the rest of a run
    degrades to fast rejections instead of waiting on a dead endpoint.
    """

    def __init__(
        self, name: str = "default", config: Optional[CircuitBreakerConfig] = None
    ):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time: Optional[float] = None
        self.state = CircuitState.CLOSED
        self._lock = threading.Lock()

    def _handle_success_locked(self) -> None:
        if self.state == CircuitState.HALF_OPEN:
            self.success_count += 1
            if self.success_count >= self.config.success_threshold:
                self.state = CircuitState.CLOSED
                self.failure_count = 0
                self.success_count = 0
        else:
            self.failure_count = 0

    def _handle_failure_locked(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()
        if (
            self.state == CircuitState.HALF_OPEN
            or self.failure_count >= self.config.failure_threshold
        ):
            if self.state != CircuitState.OPEN:
                logger.warning("⚠️ Circuit %s opened after %d failures", self.name, self.failure_count)
            self.state = CircuitState.OPEN
            self.success_count = 0

    def call(self, func: Callable[..., R], *args: Any, **kwargs: Any) -> R:
        """Execute function with circuit breaker protection."""
        with self._lock:
            if self.state == CircuitState.OPEN:
                if (
                    self.last_failure_time
                    and time.time() - self.last_failure_time
                    > self.config.recovery_timeout
                ):
                    self.state = CircuitState.HALF_OPEN
                    self.success_count = 0
                else:
                    raise CircuitBreakerOpenError(
                        f"Circuit breaker {self.name} is OPEN", authority=self.name
                    )

        try:
            result = func(*args, **kwargs)
        except Exception:
            with self._lock:
                self._handle_failure_locked()
            raise
        with self._lock:
            self._handle_success_locked()
        return result

    def reset(self) -> None:
        """Manually reset circuit breaker to CLOSED state."""
        with self._lock:
            self.state = CircuitState.CLOSED
            self.failure_count = 0
            self.success_count = 0
            self.last_failure_time = None

    def get_stats(self) -> dict[str, Any]:
        """Get circuit breaker statistics."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "success_count": self.success_count,
            "last_failure_time": self.last_failure_time,
        }


# === RECOVERY CONTEXT ===


@dataclass
class RecoveryContext:
    """Context container shared across run-level retry attempts."""

    operation_name: str
    attempt_number: int = 1
    max_attempts: int = 3
    last_error: Optional[Exception] = None
    error_history: list[Exception] = field(default_factory=list)
    start_time: datetime = field(default_factory=datetime.now)

    def add_error(self, error: Exception) -> None:
        self.last_error = error
        self.error_history.append(error)

    def should_retry(self) -> bool:
        return self.attempt_number < self.max_attempts

    def get_backoff_delay(
        self, base_delay: float = 1.0, max_delay: float = 60.0
    ) -> float:
        delay = min(base_delay * (2 ** max(self.attempt_number - 1, 0)), max_delay)
        jitter = random.uniform(0.1, 0.3) * delay
        return delay + jitter


# === DECORATORS ===


def with_enhanced_recovery(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    retryable_exceptions: tuple[type[Exception], ...] = (RetryableError,),
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Decorator that retries a whole operation with exponential backoff.

    This is the caller-level retry policy; individual validation calls are
    never retried inside the cache.
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            operation_name = f"{func.__module__}.{func.__name__}"
            context = RecoveryContext(
                operation_name=operation_name,
                max_attempts=max_attempts,
            )

            for attempt in range(1, max_attempts + 1):
                context.attempt_number = attempt
                try:
                    logger.debug(
                        "Attempting %s (%d/%d)", operation_name, attempt, max_attempts
                    )
                    result = func(*args, **kwargs)
                    if attempt > 1:
                        logger.info(
                            "✅ %s succeeded after %d attempts", operation_name, attempt
                        )
                    return result
                except Exception as exc:
                    context.add_error(exc)

                    if not isinstance(exc, retryable_exceptions):
                        logger.error(
                            "❌ Non-retryable error in %s: %s", operation_name, exc
                        )
                        raise

                    logger.warning(
                        "⚠️ %s failed (%d/%d): %s",
                        operation_name,
                        attempt,
                        max_attempts,
                        exc,
                    )

                    if not context.should_retry():
                        logger.error(
                            "❌ %s failed after %d attempts",
                            operation_name,
                            max_attempts,
                        )
                        raise

                    delay = context.get_backoff_delay(base_delay, max_delay)
                    logger.debug("Retrying %s in %.1fs", operation_name, delay)
                    time.sleep(delay)

            raise RuntimeError(f"Unknown error in {operation_name}")

        return wrapper

    return decorator


# ============================================================================
# Unit Tests
# ============================================================================
def _create_module_tests():
    """Create unit tests for error_handling module."""
    from test_framework import TestSuite, suppress_logging

    suite = TestSuite("Error Handling Tests")

    def test_validation_unavailable_is_retryable():
        err = ValidationUnavailableError("down", authority="http", status_code=503)
        assert isinstance(err, RetryableError)
        assert err.status_code == 503

    def test_corpus_errors_are_fatal():
        assert isinstance(EmptyCorpusError(), FatalError)
        assert isinstance(RootNotFoundError(), CorpusError)

    def test_circuit_opens_after_threshold():
        cb = CircuitBreaker(
            name="t", config=CircuitBreakerConfig(failure_threshold=2)
        )

        def boom() -> None:
            raise ValueError("fail")

        with suppress_logging():
            for _ in range(2):
                try:
                    cb.call(boom)
                except ValueError:
                    pass
        assert cb.state == CircuitState.OPEN
        try:
            cb.call(lambda: None)
            raise AssertionError("expected CircuitBreakerOpenError")
        except CircuitBreakerOpenError:
            pass

    def test_recovery_retries_retryable():
        calls = []

        @with_enhanced_recovery(max_attempts=3, base_delay=0.001)
        def flaky() -> str:
            calls.append(1)
            if len(calls) < 2:
                raise ValidationUnavailableError("blip")
            return "ok"

        with suppress_logging():
            assert flaky() == "ok"
        assert len(calls) == 2

    suite.add_test("ValidationUnavailableError retryable", test_validation_unavailable_is_retryable)
    suite.add_test("Corpus errors fatal", test_corpus_errors_are_fatal)
    suite.add_test("Circuit opens after threshold", test_circuit_opens_after_threshold)
    suite.add_test("Recovery retries retryable errors", test_recovery_retries_retryable)

    return suite
