"""Bounded exponential backoff around a single logical generation."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from ..errors import RetriesExhausted, TransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """Retry transient failures with exponential backoff.

    Only :class:`TransientError` is retried. Quota, model and parse errors
    propagate on the first occurrence. Each attempt is bounded by
    ``attempt_timeout``; a timeout counts as a transient failure.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 5.0,
        multiplier: float = 2.0,
        attempt_timeout: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.multiplier = multiplier
        self.attempt_timeout = attempt_timeout
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay,
            multiplier=settings.retry_multiplier,
            attempt_timeout=settings.generation_timeout,
            **kwargs,
        )

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        return self.base_delay * (self.multiplier ** (attempt - 1))

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        last_error: Optional[TransientError] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                if self.attempt_timeout:
                    return await asyncio.wait_for(operation(), self.attempt_timeout)
                return await operation()
            except asyncio.TimeoutError:
                last_error = TransientError(
                    f"Attempt timed out after {self.attempt_timeout:.0f}s"
                )
            except TransientError as e:
                last_error = e

            if attempt < self.max_attempts:
                delay = self.delay_for(attempt)
                logger.warning(
                    f"Transient failure (attempt {attempt}/{self.max_attempts}): "
                    f"{last_error}. Retrying in {delay:.0f}s"
                )
                await self._sleep(delay)

        logger.error(f"Retries exhausted after {self.max_attempts} attempts")
        raise RetriesExhausted(self.max_attempts, last_error)
