"""In-memory token-bucket rate limiter for the authorization endpoints.

One bucket per client IP. The limiter guards both /oauth/authorize and the
consent decision POST against brute-force and scripted replays.
"""

from __future__ import annotations

import math
import threading
import time

__all__ = ["RateLimiter", "RateLimitInfo", "authorize_limiter"]


class _Bucket:
    __slots__ = ("tokens", "last_refill")

    def __init__(self, capacity: float, now: float):
        self.tokens: float = capacity
        self.last_refill: float = now


class RateLimitInfo:
    """Result of ``RateLimiter.check()``."""

    __slots__ = ("allowed", "limit", "remaining", "reset_after")

    def __init__(self, allowed: bool, limit: int, remaining: int, reset_after: float):
        self.allowed = allowed
        self.limit = limit
        self.remaining = remaining
        self.reset_after = reset_after

    def headers(self) -> dict[str, str]:
        h = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_after)),
        }
        if not self.allowed:
            h["Retry-After"] = str(math.ceil(self.reset_after))
        return h


class RateLimiter:
    """Token bucket keyed by client identifier.

    Parameters
    ----------
    rate : float
        Tokens added per second.
    capacity : int
        Burst size.
    sweep_interval : float
        Seconds between sweeps of idle buckets made from ``check()``.
    """

    def __init__(self, rate: float, capacity: int, sweep_interval: float = 300.0):
        self.rate = rate
        self.capacity = capacity
        self.sweep_interval = sweep_interval
        self._buckets: dict[str, _Bucket] = {}
        self._lock = threading.Lock()
        self._last_sweep = time.monotonic()

    def __len__(self) -> int:
        return len(self._buckets)

    def allow(self, key: str) -> bool:
        return self.check(key).allowed

    def check(self, key: str) -> RateLimitInfo:
        now = time.monotonic()
        with self._lock:
            if now - self._last_sweep > self.sweep_interval:
                self._drop_idle(now, self._refill_seconds())
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = self._buckets[key] = _Bucket(self.capacity, now)

            elapsed = now - bucket.last_refill
            bucket.tokens = min(self.capacity, bucket.tokens + elapsed * self.rate)
            bucket.last_refill = now

            if bucket.tokens >= 1.0:
                bucket.tokens -= 1.0
                reset_after = (self.capacity - bucket.tokens) / self.rate if self.rate > 0 else 0
                return RateLimitInfo(True, self.capacity, int(bucket.tokens), reset_after)

            reset_after = (1.0 - bucket.tokens) / self.rate if self.rate > 0 else 1.0
            return RateLimitInfo(False, self.capacity, 0, reset_after)

    def _refill_seconds(self) -> float:
        # Idle this long, a bucket has refilled to capacity
        return self.capacity / self.rate if self.rate > 0 else 3600.0

    def _drop_idle(self, now: float, max_age: float) -> int:
        stale = [k for k, b in self._buckets.items() if now - b.last_refill > max_age]
        for k in stale:
            del self._buckets[k]
        self._last_sweep = now
        return len(stale)

    def cleanup(self, max_age: float = 3600.0) -> int:
        """Remove buckets idle for more than *max_age* seconds. Returns count removed."""
        with self._lock:
            return self._drop_idle(time.monotonic(), max_age)

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


# Browsers hit /authorize a few times per sign-in (login bounce, consent POST)
authorize_limiter = RateLimiter(rate=2.0, capacity=20)
