"""Call pacing and retry for the classification service.

Cases are classified one at a time. ``RequestPacer`` enforces the minimum gap
between consecutive calls and ``RetryPolicy`` re-issues a call that failed
with a rate-limit or overload response.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from friction_intel.config import settings
from friction_intel.errors import TransientServiceError

logger = structlog.get_logger()

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


class RetryPolicy:
    def __init__(
        self,
        max_attempts: int = 5,
        base_delay: float = 3.0,
        max_delay: float = 60.0,
        sleep: Sleep = asyncio.sleep,
    ):
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.CLASSIFIER_MAX_ATTEMPTS,
            base_delay=settings.CLASSIFIER_RETRY_BASE_SECONDS,
            max_delay=settings.CLASSIFIER_RETRY_MAX_SECONDS,
        )

    def delay_for(self, attempt: int) -> float:
        """Backoff before retrying after the given 0-based attempt."""
        return min(self.base_delay * (2 ** attempt), self.max_delay)

    async def run(self, call: Callable[[], Awaitable[T]]) -> T:
        for attempt in range(self.max_attempts):
            try:
                return await call()
            except TransientServiceError as e:
                if attempt == self.max_attempts - 1:
                    raise TransientServiceError(
                        f"Classification service unavailable after {self.max_attempts} attempts: {e.message}",
                        {**e.detail, "attempts": self.max_attempts},
                        status=e.status,
                    ) from e
                delay = self.delay_for(attempt)
                logger.warning(
                    "classifier_retry",
                    status=e.status,
                    delay_seconds=delay,
                    attempt=attempt + 1,
                    max_attempts=self.max_attempts,
                )
                await self._sleep(delay)
        raise AssertionError("unreachable")


class RequestPacer:
    """Single-token gate: at most one call per ``min_interval`` seconds."""

    def __init__(
        self,
        min_interval: float = 0.3,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_interval = min_interval
        self._sleep = sleep
        self._clock = clock
        self._last_call: float | None = None

    @classmethod
    def from_settings(cls) -> "RequestPacer":
        return cls(min_interval=settings.CLASSIFIER_CALL_INTERVAL_SECONDS)

    async def wait(self) -> None:
        if self._last_call is None or self.min_interval <= 0:
            return
        remaining = self.min_interval - (self._clock() - self._last_call)
        if remaining > 0:
            await self._sleep(remaining)

    def mark(self) -> None:
        self._last_call = self._clock()
