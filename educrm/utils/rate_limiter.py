"""Rate limiting for reasoning calls.

Replaces fixed sleeps between generated emails with a token bucket, a
concurrency cap and a small random jitter.
"""

import asyncio
import random
from typing import Optional

from aiolimiter import AsyncLimiter

from educrm.models.config import RateLimiting


class ReasoningRateLimiter:
    """Throttles calls to the reasoning backend.

    Uses an aiolimiter AsyncLimiter for the sustained rate and an
    asyncio.Semaphore for the number of calls in flight. Used as an async
    context manager around each backend call:

        async with limiter:
            await backend.complete(prompt, schema)
    """

    def __init__(
        self,
        max_rate: float = 1.0,
        time_period: float = 1.0,
        max_concurrent: int = 5,
        jitter: float = 0.25,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the limiter.

        Args:
            max_rate: Maximum calls per time_period (default: 1 call/sec)
            time_period: Time period in seconds (default: 1 second)
            max_concurrent: Maximum calls in flight at once
            jitter: Upper bound in seconds of the random delay added per call
            rng: Random source (injectable for tests)
        """
        self.limiter = AsyncLimiter(max_rate=max_rate, time_period=time_period)
        self.semaphore = asyncio.Semaphore(max_concurrent)
        self.jitter = jitter
        self.max_concurrent = max_concurrent
        self._rng = rng or random.Random()

    @classmethod
    def from_config(cls, config: RateLimiting) -> "ReasoningRateLimiter":
        return cls(
            max_rate=config.max_rate,
            time_period=config.time_period,
            max_concurrent=config.max_concurrent_llm_calls,
            jitter=config.jitter_seconds,
        )

    async def acquire(self) -> None:
        """Wait for a concurrency slot, a rate token and the jitter delay."""
        await self.semaphore.acquire()
        try:
            await self.limiter.acquire()
            if self.jitter > 0:
                await asyncio.sleep(self._rng.uniform(0, self.jitter))
        except BaseException:
            self.semaphore.release()
            raise

    def release(self) -> None:
        self.semaphore.release()

    async def __aenter__(self) -> "ReasoningRateLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()
