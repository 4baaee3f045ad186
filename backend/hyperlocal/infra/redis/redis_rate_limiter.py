# hyperlocal/infra/redis/redis_rate_limiter.py
from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field

import redis  # type: ignore[import-untyped]

from hyperlocal.services._shared.ports.rate_limiter import (
    RateLimitDecision,
    fixed_window_decision,
)


@dataclass(slots=True)
class RedisRateLimiter:
    """
    Fixed-window rate limiter shared by every worker connected to Redis.

    Each window is one key, ``<prefix>:<key>:<window index>``. ``INCR`` and
    ``EXPIRE`` run in one ``MULTI`` block so the counter never outlives its
    window by more than one extra window.

    :param r: A Redis client (already connected).
    :param prefix: Namespace for limiter keys.
    :param clock: Time source returning seconds.
    """

    r: redis.Redis
    prefix: str = "rl"
    clock: Callable[[], float] = field(default=time.time)

    def _k(self, key: str, bucket: int) -> str:
        return f"{self.prefix}:{key}:{bucket}"

    def hit(self, key: str, *, limit: int, window_s: int) -> RateLimitDecision:
        now = self.clock()
        bucket = int(now // window_s)
        pipe = self.r.pipeline(transaction=True)
        pipe.incr(self._k(key, bucket))
        pipe.expire(self._k(key, bucket), window_s * 2)
        count, _ = pipe.execute()
        return fixed_window_decision(int(count), limit=limit, window_s=window_s, now=now)
