"""Request rate limiting keyed by operation and caller.

``MemoryRateLimiter`` only sees requests served by its own process. Deployments
running several instances should set ``RATE_LIMIT_BACKEND=redis`` so every
instance shares the same counters.
"""

import logging
import threading
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Optional

import redis
from fastapi import Request

from app.config import settings
from app.errors import RateLimitedError
from app.utils.retry import redis_retry

logger = logging.getLogger(__name__)

SWEEP_INTERVAL = 60.0


@dataclass
class RateLimitResult:
    success: bool
    remaining: int
    reset_at: float  # epoch seconds


@dataclass
class _Entry:
    count: int
    reset_at: float


class MemoryRateLimiter:
    def __init__(self, clock=time.time):
        self._clock = clock
        self._store: Dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def _sweep(self, now: float):
        if now - self._last_sweep < SWEEP_INTERVAL:
            return
        for key in [k for k, e in self._store.items() if now > e.reset_at]:
            del self._store[key]
        self._last_sweep = now

    def hit(self, key: str, limit: int = 10, window_seconds: float = 60.0) -> RateLimitResult:
        now = self._clock()
        with self._lock:
            self._sweep(now)
            entry = self._store.get(key)

            if entry is None or now > entry.reset_at:
                entry = _Entry(count=1, reset_at=now + window_seconds)
                self._store[key] = entry
                return RateLimitResult(True, limit - 1, entry.reset_at)

            entry.count += 1
            if entry.count > limit:
                return RateLimitResult(False, 0, entry.reset_at)
            return RateLimitResult(True, limit - entry.count, entry.reset_at)

    def __len__(self):
        return len(self._store)


class RedisRateLimiter:
    """Fixed-window counters shared across instances."""

    def __init__(self, url: Optional[str] = None, client=None, prefix: str = "ratelimit"):
        self.redis = client or redis.Redis.from_url(url or settings.REDIS_URL, decode_responses=True)
        self.prefix = prefix

    @redis_retry()
    def _incr(self, key: str, window_ms: int):
        pipe = self.redis.pipeline()
        pipe.incr(key)
        pipe.pexpire(key, window_ms, nx=True)
        pipe.pttl(key)
        count, _, ttl_ms = pipe.execute()
        return int(count), int(ttl_ms)

    def hit(self, key: str, limit: int = 10, window_seconds: float = 60.0) -> RateLimitResult:
        window_ms = int(window_seconds * 1000)
        count, ttl_ms = self._incr(f"{self.prefix}:{key}", window_ms)
        if ttl_ms < 0:
            ttl_ms = window_ms
        reset_at = time.time() + ttl_ms / 1000

        if count > limit:
            return RateLimitResult(False, 0, reset_at)
        return RateLimitResult(True, limit - count, reset_at)


@lru_cache
def get_rate_limiter():
    if settings.RATE_LIMIT_BACKEND == "redis":
        logger.info("Using redis rate limiter")
        return RedisRateLimiter()
    return MemoryRateLimiter()


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.headers.get("x-real-ip") or "unknown"


def rate_limit(operation: str, limit: int, window_seconds: float = 60.0):
    """FastAPI dependency factory: ``Depends(rate_limit("checkout", 5))``."""

    def dependency(request: Request) -> RateLimitResult:
        key = f"{operation}:{get_client_ip(request)}"
        result = get_rate_limiter().hit(key, limit, window_seconds)
        if not result.success:
            logger.warning(f"Rate limit exceeded for {key}")
            raise RateLimitedError(result.reset_at)
        return result

    return dependency
