"""Circuit breaker for calls to the text-analysis gateway.

After ``failure_threshold`` consecutive failures the breaker opens and
rejects calls with CircuitOpenError, so a run that hits a dead gateway
falls back to neutral classifications immediately instead of waiting out a
timeout per item. After ``recovery_timeout`` one probe call is let through.

Usage:
    breaker = GenericCircuitBreaker(failure_threshold=5, recovery_timeout=60.0)
    try:
        result = await breaker.call(gateway.chat, messages)
    except CircuitOpenError:
        ...  # use the default
"""

import enum
import logging
import time
from typing import Any, Callable, Coroutine, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(enum.Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """Raised when calling through an open circuit breaker."""


class GenericCircuitBreaker:
    """CLOSED → OPEN → HALF_OPEN → CLOSED breaker around an async callable.

    Args:
        failure_threshold: Consecutive failures before opening.
        recovery_timeout: Seconds an open breaker waits before a probe.
        name: Label used in log lines.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        name: str = "circuit_breaker",
    ) -> None:
        self._failure_threshold = failure_threshold
        self._recovery_timeout = recovery_timeout
        self._name = name
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at = 0.0

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    async def call(
        self,
        fn: Callable[..., Coroutine[Any, Any, T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Run ``fn`` unless the breaker is open.

        Raises:
            CircuitOpenError: Breaker is open and the recovery timeout has
                not elapsed.
        """
        if self._state == CircuitState.OPEN:
            if time.monotonic() - self._opened_at < self._recovery_timeout:
                raise CircuitOpenError(f"Circuit breaker {self._name} is OPEN")
            self._state = CircuitState.HALF_OPEN
            logger.info("Circuit breaker %s: probing after recovery timeout", self._name)

        try:
            result = await fn(*args, **kwargs)
        except Exception:
            self._on_failure()
            raise

        if self._state == CircuitState.HALF_OPEN:
            logger.info("Circuit breaker %s: probe succeeded, closing", self._name)
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        return result

    def _on_failure(self) -> None:
        self._consecutive_failures += 1

        if (
            self._state == CircuitState.HALF_OPEN
            or self._consecutive_failures >= self._failure_threshold
        ):
            if self._state != CircuitState.OPEN:
                logger.warning(
                    "Circuit breaker %s: opening after %d consecutive failures",
                    self._name,
                    self._consecutive_failures,
                )
            self._state = CircuitState.OPEN
            self._opened_at = time.monotonic()
