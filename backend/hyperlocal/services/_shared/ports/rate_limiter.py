from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    """
    Verdict for a single hit against a fixed window.

    :ivar allowed: Whether the hit fits in the current window.
    :ivar remaining: Hits left in the window after this one.
    :ivar retry_after: Seconds until the window resets.
    """

    allowed: bool
    remaining: int
    retry_after: int


class RateLimiter(Protocol):
    """Port for fixed-window rate limiting shared by all workers of a store."""

    def hit(self, key: str, *, limit: int, window_s: int) -> RateLimitDecision: ...


def fixed_window_decision(count: int, *, limit: int, window_s: int, now: float) -> RateLimitDecision:
    """Classify the ``count``-th hit in the window containing ``now``."""
    retry_after = max(1, int(window_s - (now % window_s)))
    return RateLimitDecision(
        allowed=count <= limit,
        remaining=max(0, limit - count),
        retry_after=retry_after,
    )


class InMemoryRateLimiter:
    """
    Process-local fixed-window limiter.

    Windows are aligned to multiples of ``window_s`` since the epoch. A key's
    entry is replaced when a newer window starts, and entries whose window
    has ended are swept at most once per window so idle keys do not pile up.
    All state changes happen under one lock.

    :param clock: Time source returning seconds; defaults to :func:`time.time`.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.time
        # key -> (window index, hits, window length)
        self._windows: dict[str, tuple[int, int, int]] = {}
        self._next_sweep = 0.0
        self._lock = threading.Lock()

    def hit(self, key: str, *, limit: int, window_s: int) -> RateLimitDecision:
        now = self._clock()
        bucket = int(now // window_s)
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)
                self._next_sweep = now + window_s
            current_bucket, count, _ = self._windows.get(key, (bucket, 0, window_s))
            if current_bucket != bucket:
                count = 0
            count += 1
            self._windows[key] = (bucket, count, window_s)
        return fixed_window_decision(count, limit=limit, window_s=window_s, now=now)

    def _sweep(self, now: float) -> None:
        stale = [k for k, (b, _, w) in self._windows.items() if (b + 1) * w <= now]
        for k in stale:
            del self._windows[k]

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
            self._next_sweep = 0.0

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
