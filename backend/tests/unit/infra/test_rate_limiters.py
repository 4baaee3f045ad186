# tests/unit/infra/test_rate_limiters.py
from __future__ import annotations

import fakeredis
import pytest
from hyperlocal.infra.redis.redis_rate_limiter import RedisRateLimiter
from hyperlocal.services._shared.ports.rate_limiter import InMemoryRateLimiter


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(params=["memory", "redis"])
def limiter(request, clock):
    if request.param == "memory":
        return InMemoryRateLimiter(clock=clock)
    return RedisRateLimiter(fakeredis.FakeRedis(), prefix="test", clock=clock)


def test_allows_up_to_limit_then_blocks(limiter):
    decisions = [limiter.hit("u1", limit=3, window_s=60) for _ in range(4)]

    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert [d.remaining for d in decisions] == [2, 1, 0, 0]
    assert decisions[-1].retry_after == 20  # 1000 % 60 == 40


def test_keys_are_independent(limiter):
    limiter.hit("u1", limit=1, window_s=60)
    assert limiter.hit("u2", limit=1, window_s=60).allowed


def test_new_window_resets(limiter, clock):
    for _ in range(2):
        limiter.hit("u1", limit=1, window_s=60)
    clock.now += 60
    assert limiter.hit("u1", limit=1, window_s=60).allowed


def test_redis_keys_expire():
    r = fakeredis.FakeRedis()
    RedisRateLimiter(r, prefix="rl", clock=lambda: 120.0).hit("k", limit=5, window_s=60)
    assert 0 < r.ttl("rl:k:2") <= 120


def test_memory_reset(clock):
    limiter = InMemoryRateLimiter(clock=clock)
    limiter.hit("u1", limit=1, window_s=60)
    limiter.reset()
    assert limiter.hit("u1", limit=1, window_s=60).allowed


def test_memory_limiter_drops_finished_windows(clock):
    """
    GIVEN keys that were hit in an earlier window and then went idle
    WHEN a hit lands in a later window
    THEN the idle keys' state is discarded.
    """
    limiter = InMemoryRateLimiter(clock=clock)
    for key in ("u1", "u2", "u3"):
        limiter.hit(key, limit=5, window_s=60)
    assert len(limiter) == 3

    clock.now += 60
    limiter.hit("u4", limit=5, window_s=60)

    assert len(limiter) == 1


def test_both_limiters_agree_on_decisions(clock):
    memory = InMemoryRateLimiter(clock=clock)
    shared = RedisRateLimiter(fakeredis.FakeRedis(), prefix="test", clock=clock)

    for _ in range(3):
        assert memory.hit("u1", limit=2, window_s=30) == shared.hit("u1", limit=2, window_s=30)
