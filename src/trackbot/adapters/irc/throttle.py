"""IRC flood control: token bucket shared by all outbound lines."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable


class TokenBucket:
    """Allows ``limit`` lines in a burst, refilled at ``refill_rate`` lines per second."""

    def __init__(
        self,
        limit: int,
        refill_rate: float = 1.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1 or refill_rate <= 0:
            raise ValueError("limit must be >= 1 and refill_rate > 0")
        self._limit = limit
        self._refill_rate = refill_rate
        self._clock = clock
        self._tokens = float(limit)
        self._last_refill = clock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(float(self._limit), self._tokens + elapsed * self._refill_rate)
        self._last_refill = now

    def use_token(self) -> bool:
        """Consume one token if available."""
        self._refill()
        if self._tokens >= 1:
            self._tokens -= 1
            return True
        return False

    def delay(self) -> float:
        """Seconds until a token is available; 0 if one is available now."""
        self._refill()
        if self._tokens >= 1:
            return 0.0
        return (1 - self._tokens) / self._refill_rate

    async def wait(self) -> None:
        """Sleep until a token is available, then consume it."""
        while not self.use_token():
            await asyncio.sleep(self.delay())
