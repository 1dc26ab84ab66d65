"""Rate limiting for relay uploads."""

from imgrelay.concurrency.rate_limiter import RateLimiter

__all__ = ["RateLimiter"]
