"""
Resilience utilities for the structured generation path.

This module provides a CircuitBreaker that lets the review generator skip the
Ollama HTTP API during a sustained outage and go straight to the CLI path.
"""

import logging
import time
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing if service recovered


class CircuitBreakerOpenError(Exception):
    """Raised when circuit breaker is open."""
    pass


class CircuitBreaker:
    """
    Circuit breaker pattern implementation for external service calls.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: Service is failing, requests are rejected immediately
    - HALF_OPEN: Testing if service recovered, limited requests allowed

    Args:
        failure_threshold: Number of consecutive failures before opening circuit (default: 3)
        timeout: Seconds to wait before attempting recovery (default: 30)
        half_open_max_calls: Max calls allowed in half-open state (default: 1)
        clock: Monotonic time source, replaceable in tests

    Example:
        breaker = CircuitBreaker(failure_threshold=3, timeout=30)
        result = await breaker.call(lambda: client.post(url, json=body))
    """

    def __init__(
        self,
        failure_threshold: int = 3,
        timeout: int = 30,
        half_open_max_calls: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.half_open_max_calls = half_open_max_calls
        self._clock = clock

        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time: Optional[float] = None
        self.state = CircuitState.CLOSED
        self.half_open_calls = 0

        logger.info(
            f"CircuitBreaker initialized: failure_threshold={failure_threshold}, "
            f"timeout={timeout}s"
        )

    async def call(self, func: Callable[[], Awaitable[T]]) -> T:
        """
        Execute function with circuit breaker protection.

        Args:
            func: Zero-argument coroutine function to execute

        Returns:
            Function result

        Raises:
            CircuitBreakerOpenError: If circuit is open
            Exception: Any exception raised by the function
        """
        if self.state == CircuitState.OPEN:
            if self.last_failure_time is not None and (self._clock() - self.last_failure_time) > self.timeout:
                logger.info("Circuit breaker transitioning to HALF_OPEN state")
                self.state = CircuitState.HALF_OPEN
                self.half_open_calls = 0
            else:
                raise CircuitBreakerOpenError(
                    f"Circuit breaker is OPEN. Service unavailable. "
                    f"Will retry after {self.timeout}s timeout."
                )

        if self.state == CircuitState.HALF_OPEN:
            if self.half_open_calls >= self.half_open_max_calls:
                raise CircuitBreakerOpenError(
                    "Circuit breaker is HALF_OPEN and max test calls reached"
                )
            self.half_open_calls += 1

        try:
            result = await func()
        except Exception:
            self._record_failure()
            raise

        self._record_success()
        return result

    def _record_success(self) -> None:
        """Record successful call."""
        self.success_count += 1

        if self.state == CircuitState.HALF_OPEN:
            if self.success_count >= self.half_open_max_calls:
                logger.info("Circuit breaker transitioning to CLOSED state (service recovered)")
                self.state = CircuitState.CLOSED
                self.failure_count = 0
                self.success_count = 0
                self.half_open_calls = 0
        elif self.state == CircuitState.CLOSED and self.failure_count > 0:
            logger.debug("Circuit breaker: resetting failure count after success")
            self.failure_count = 0

    def _record_failure(self) -> None:
        """Record failed call."""
        self.failure_count += 1
        self.last_failure_time = self._clock()

        if self.state == CircuitState.HALF_OPEN:
            logger.warning("Circuit breaker transitioning to OPEN state (service still failing)")
            self.state = CircuitState.OPEN
            self.success_count = 0
            self.half_open_calls = 0
        elif self.state == CircuitState.CLOSED and self.failure_count >= self.failure_threshold:
            logger.warning(
                f"Circuit breaker transitioning to OPEN state "
                f"(failure threshold {self.failure_threshold} exceeded)"
            )
            self.state = CircuitState.OPEN
            self.success_count = 0

    def get_state(self) -> CircuitState:
        """Get current circuit breaker state."""
        return self.state

    def reset(self) -> None:
        """Manually reset circuit breaker to closed state."""
        logger.info("Circuit breaker manually reset to CLOSED state")
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.half_open_calls = 0
        self.last_failure_time = None


def create_inference_circuit_breaker(failure_threshold: int = 3, timeout: int = 30) -> CircuitBreaker:
    """Create circuit breaker configured for Ollama generation calls."""
    return CircuitBreaker(
        failure_threshold=failure_threshold,
        timeout=timeout,
        half_open_max_calls=1
    )
