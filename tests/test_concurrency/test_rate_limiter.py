"""Tests for the relay token-bucket rate limiter."""

import time

from imgrelay.concurrency.rate_limiter import RateLimiter


class TestRateLimiter:
    async def test_acquire_within_limit(self):
        limiter = RateLimiter(rpm_limit=100)
        wait = await limiter.acquire()
        assert wait == 0.0  # Should not wait

    async def test_acquire_tracks_requests(self):
        limiter = RateLimiter(rpm_limit=100)
        await limiter.acquire()
        await limiter.acquire()
        assert limiter.stats["total_requests"] == 2

    async def test_bucket_deduction(self):
        limiter = RateLimiter(rpm_limit=10)
        initial = limiter.stats["available"]
        await limiter.acquire()
        assert limiter.stats["available"] < initial

    async def test_waits_when_exhausted(self):
        limiter = RateLimiter(rpm_limit=60)  # 1 token/second
        for _ in range(60):
            await limiter.acquire()
        start = time.monotonic()
        wait = await limiter.acquire()
        assert wait > 0
        assert time.monotonic() - start >= 0.05

    async def test_zero_disables_limiting(self):
        limiter = RateLimiter(rpm_limit=0)
        for _ in range(100):
            assert await limiter.acquire() == 0.0
        assert limiter.stats["total_requests"] == 100

    async def test_reset(self):
        limiter = RateLimiter(rpm_limit=100)
        await limiter.acquire()
        limiter.reset()
        assert limiter.stats["total_requests"] == 0
        assert limiter.stats["available"] == 100.0
