"""Token-bucket rate limiter for relay messages per minute."""

from __future__ import annotations

import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class RateLimiter:
    """Token bucket sized to the relay's per-chat message limit.

    The bucket starts full and refills continuously at ``rpm_limit / 60``
    tokens per second. A limit of 0 disables limiting.
    """

    def __init__(self, rpm_limit: int = 20) -> None:
        self._rpm_limit = rpm_limit
        self._tokens = float(rpm_limit)
        self._last_refill = time.monotonic()

        self._lock = asyncio.Lock()

        # Stats
        self._total_requests = 0
        self._total_wait_seconds = 0.0

    async def acquire(self) -> float:
        """Wait until a token is available, then take it.

        Returns the time spent waiting (seconds).
        """
        if self._rpm_limit <= 0:
            self._total_requests += 1
            return 0.0

        wait_total = 0.0

        async with self._lock:
            while True:
                self._refill()
                if self._tokens >= 1:
                    self._tokens -= 1
                    self._total_requests += 1
                    break

                wait_time = max((1 - self._tokens) / (self._rpm_limit / 60.0), 0.01)
                wait_total += wait_time
                logger.debug("Relay rate limit reached, waiting %.2fs", wait_time)
                # Holding the lock keeps waiters in FIFO order
                await asyncio.sleep(wait_time)

        self._total_wait_seconds += wait_total
        return wait_total

    @property
    def stats(self) -> dict:
        self._refill()
        return {
            "rpm_limit": self._rpm_limit,
            "available": self._tokens,
            "total_requests": self._total_requests,
            "total_wait_seconds": self._total_wait_seconds,
        }

    def reset(self) -> None:
        """Reset all state (for testing)."""
        self._tokens = float(self._rpm_limit)
        self._last_refill = time.monotonic()
        self._total_requests = 0
        self._total_wait_seconds = 0.0

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._last_refill = now
        if self._rpm_limit > 0:
            self._tokens = min(
                float(self._rpm_limit),
                self._tokens + elapsed * (self._rpm_limit / 60.0),
            )
