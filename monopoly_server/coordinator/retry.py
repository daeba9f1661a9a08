"""
Bounded retry with capped exponential backoff.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from monopoly_server.config import settings


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Retry an operation until it produces a value or the attempts run out."""

    max_attempts: int = settings.JOIN_MAX_ATTEMPTS
    base_delay_ms: int = settings.JOIN_BASE_DELAY_MS
    max_delay_ms: int = settings.JOIN_MAX_DELAY_MS
    factor: float = 1.5
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the given zero-based attempt."""
        return min(self.base_delay_ms * self.factor ** attempt, self.max_delay_ms) / 1000

    async def run(self, operation: Callable[[], T | None], label: str = "operation") -> T | None:
        """
        Call `operation` until it returns something other than None.

        Returns:
            The first non-None result, or None when every attempt came back empty
        """
        for attempt in range(self.max_attempts):
            result = operation()
            if result is not None:
                return result
            if attempt < self.max_attempts - 1:
                wait = self.delay(attempt)
                logger.debug(
                    f"{label} came back empty (attempt {attempt + 1}/{self.max_attempts}), "
                    f"retrying in {wait:.3f}s"
                )
                await self.sleep(wait)
        logger.warning(f"{label} still empty after {self.max_attempts} attempts")
        return None
