"""Token bucket rate limiting for link resolution.

The limiter sits in front of the engine. When a link exceeds its budget the
client answers with a ``RATE_LIMIT`` decision instead of resolving.

Example:
    >>> limiter = TokenBucketRateLimiter(RateLimitConfig(max_resolutions_per_second=100.0))
    >>> await limiter.try_acquire("spring-promo")
    True

"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any

__all__ = ["RateLimitConfig", "TokenBucketRateLimiter"]


@dataclass(slots=True)
class RateLimitConfig:
    """Rate limit settings.

    Attributes:
        max_resolutions_per_second: Global refill rate.
        per_link_limits: Refill rates for individual links, by link id.
        burst_multiplier: Bucket capacity as a multiple of the rate.

    """

    max_resolutions_per_second: float = 1000.0
    per_link_limits: dict[str, float] | None = None
    burst_multiplier: float = 1.5


class _TokenBucket:
    """A single token bucket."""

    def __init__(self, rate: float, capacity: float) -> None:
        self.rate = rate
        self.capacity = capacity
        self.tokens = capacity
        self.last_refill = time.monotonic()

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self.last_refill
        self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
        self.last_refill = now

    def can_consume(self, tokens: float = 1.0) -> bool:
        self._refill()
        return self.tokens >= tokens

    def consume(self, tokens: float = 1.0) -> bool:
        if self.can_consume(tokens):
            self.tokens -= tokens
            return True
        return False


class TokenBucketRateLimiter:
    """Rate limiter with a global bucket and optional per-link buckets."""

    def __init__(self, config: RateLimitConfig | None = None) -> None:
        self.config = config or RateLimitConfig()
        self._lock = asyncio.Lock()
        self._global = self._new_bucket(self.config.max_resolutions_per_second)
        self._links: dict[str, _TokenBucket] = {}
        self._rejected = 0

    def _new_bucket(self, rate: float) -> _TokenBucket:
        return _TokenBucket(rate=rate, capacity=rate * self.config.burst_multiplier)

    def _link_bucket(self, link_id: str) -> _TokenBucket | None:
        limits = self.config.per_link_limits
        if not limits or link_id not in limits:
            return None
        if link_id not in self._links:
            self._links[link_id] = self._new_bucket(limits[link_id])
        return self._links[link_id]

    async def try_acquire(self, link_id: str) -> bool:
        """Take one token for a link.

        A token is taken only when both the per-link bucket and the global
        bucket have one, so a rejection never drains either budget.

        Returns:
            True if the resolution may proceed.

        """
        async with self._lock:
            buckets = [bucket for bucket in (self._link_bucket(link_id), self._global) if bucket is not None]
            if not all(bucket.can_consume() for bucket in buckets):
                self._rejected += 1
                return False
            for bucket in buckets:
                bucket.consume()
            return True

    def reset(self) -> None:
        """Refill every bucket and clear counters."""
        self._global = self._new_bucket(self.config.max_resolutions_per_second)
        self._links.clear()
        self._rejected = 0

    def get_stats(self) -> dict[str, Any]:
        """Return limiter statistics."""
        return {
            "global_tokens": self._global.tokens,
            "global_capacity": self._global.capacity,
            "link_buckets": {link_id: bucket.tokens for link_id, bucket in self._links.items()},
            "rejected": self._rejected,
        }
