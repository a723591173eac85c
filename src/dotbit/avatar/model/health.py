import asyncio
from typing import Tuple


class HealthGauge:
    """
    Readiness gauge fed by infrastructure failures.

    Resolution runs that end in an `unexpected_transport_failure` (RPC node, indexer or
    gateway unreachable, or a timeout) add to the failure count; a background task drains
    it one step per tick. Ordinary "no avatar" outcomes never touch it. The service
    reports not ready while the count is above the threshold.
    """

    def __init__(self, failures: int = 0, threshold: int = 100) -> None:
        self._failures = failures
        self._threshold = threshold
        self._lock = asyncio.Lock()

    @property
    def threshold(self) -> int:
        return self._threshold

    async def womp(self, d: int = 1) -> int:
        """Record `d` infrastructure failures and return the new count."""
        async with self._lock:
            self._failures += int(d)
            return self._failures

    async def tick(self) -> None:
        async with self._lock:
            self._failures = max(self._failures - 1, 0)

    async def snapshot(self) -> Tuple[int, bool]:
        """Return the failure count and whether it is within the threshold."""
        async with self._lock:
            return self._failures, self._failures <= self._threshold

    async def is_healthy(self) -> bool:
        _, healthy = await self.snapshot()
        return healthy
