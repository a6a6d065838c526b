"""Unit tests for the fixed-window rate limiter adapters."""

from unittest.mock import Mock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.adapters.rate_limit.base import RateLimiterUnavailableError
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.adapters.rate_limit.redis_limiter import RedisFixedWindowRateLimiter


@pytest.mark.asyncio
async def test_allows_up_to_limit_in_same_window() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=3, window_seconds=60, clock=clock)

    assert (await limiter.consume("k")).allowed is True
    assert (await limiter.consume("k")).allowed is True
    result = await limiter.consume("k")
    assert result.allowed is True
    assert result.remaining == 0


@pytest.mark.asyncio
async def test_blocks_when_over_limit() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=2, window_seconds=60, clock=clock)

    await limiter.consume("k")
    await limiter.consume("k")

    blocked = await limiter.consume("k")
    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert blocked.retry_after_seconds is not None
    assert blocked.retry_after_seconds > 0


@pytest.mark.asyncio
async def test_resets_on_new_window() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=10, clock=clock)

    assert (await limiter.consume("k")).allowed is True
    assert (await limiter.consume("k")).allowed is False

    clock.return_value = 1010.0
    assert (await limiter.consume("k")).allowed is True


@pytest.mark.asyncio
async def test_isolated_by_key() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    assert (await limiter.consume("k1")).allowed is True
    assert (await limiter.consume("k1")).allowed is False

    assert (await limiter.consume("k2")).allowed is True


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        InMemoryFixedWindowRateLimiter(**kwargs)


@pytest.mark.asyncio
async def test_invalid_consume_args() -> None:
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=60)

    with pytest.raises(ValueError):
        await limiter.consume("")

    with pytest.raises(ValueError):
        await limiter.consume("k", cost=0)


class FakePipeline:
    """Just enough of a redis-py async pipeline for the limiter."""

    def __init__(self, server: "FakeRedis") -> None:
        self.server = server
        self.ops: list[tuple[str, str, int]] = []

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc) -> None:
        return None

    def incrby(self, key: str, amount: int) -> None:
        self.ops.append(("incrby", key, amount))

    def expire(self, key: str, seconds: int, nx: bool = False) -> None:
        assert nx, "expiry must only be set when the counter has none"
        self.ops.append(("expire_nx", key, seconds))

    def ttl(self, key: str) -> None:
        self.ops.append(("ttl", key, 0))

    async def execute(self) -> list[int]:
        if self.server.down:
            raise RedisConnectionError("Connection refused")
        self.server.transactions += 1
        results: list[int] = []
        for op, key, amount in self.ops:
            if op == "incrby":
                self.server.counters[key] = self.server.counters.get(key, 0) + amount
                results.append(self.server.counters[key])
            elif op == "expire_nx":
                created = key not in self.server.ttls
                if created:
                    self.server.ttls[key] = amount
                results.append(int(created))
            else:
                results.append(self.server.ttls.get(key, -1))
        return results


class FakeRedis:
    def __init__(self) -> None:
        self.counters: dict[str, int] = {}
        self.ttls: dict[str, int] = {}
        self.transactions = 0
        self.down = False

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    async def ping(self) -> bool:
        if self.down:
            raise RedisConnectionError("Connection refused")
        return True

    def tick(self, seconds: int) -> None:
        for key in self.ttls:
            self.ttls[key] -= seconds

    def expire_window(self) -> None:
        self.counters.clear()
        self.ttls.clear()


@pytest.mark.asyncio
async def test_redis_limiter_counts_per_window_and_sets_expiry() -> None:
    server = FakeRedis()
    limiter = RedisFixedWindowRateLimiter(server, limit=2, window_seconds=60)

    first = await limiter.consume("ip:1.2.3.4")
    assert first.allowed is True
    assert first.remaining == 1
    assert server.ttls["rate_limit:ip:1.2.3.4"] == 60

    assert (await limiter.consume("ip:1.2.3.4")).allowed is True
    blocked = await limiter.consume("ip:1.2.3.4")
    assert blocked.allowed is False
    assert blocked.retry_after_seconds == 60

    server.expire_window()
    assert (await limiter.consume("ip:1.2.3.4")).allowed is True


@pytest.mark.asyncio
async def test_redis_limiter_raises_unavailable_on_connection_error() -> None:
    server = FakeRedis()
    server.down = True
    limiter = RedisFixedWindowRateLimiter(server, limit=2, window_seconds=60)

    with pytest.raises(RateLimiterUnavailableError):
        await limiter.consume("ip:1.2.3.4")

    with pytest.raises(RateLimiterUnavailableError):
        await limiter.ping()


@pytest.mark.asyncio
async def test_redis_limiter_keeps_window_expiry_in_one_transaction() -> None:
    server = FakeRedis()
    limiter = RedisFixedWindowRateLimiter(server, limit=2, window_seconds=60)

    await limiter.consume("ip:1.2.3.4")
    server.tick(20)
    await limiter.consume("ip:1.2.3.4")
    blocked = await limiter.consume("ip:1.2.3.4")

    assert server.transactions == 3
    assert server.ttls["rate_limit:ip:1.2.3.4"] == 40
    assert blocked.retry_after_seconds == 40


@pytest.mark.parametrize("backend", ["memory", "redis"])
@pytest.mark.asyncio
async def test_rejected_hits_count_against_the_window(backend: str) -> None:
    if backend == "memory":
        limiter = InMemoryFixedWindowRateLimiter(
            limit=3, window_seconds=60, clock=Mock(return_value=1000.0)
        )
    else:
        limiter = RedisFixedWindowRateLimiter(FakeRedis(), limit=3, window_seconds=60)

    assert (await limiter.consume("k", cost=2)).allowed is True
    assert (await limiter.consume("k", cost=2)).allowed is False
    # 2 + 2 already spent, so a single unit no longer fits
    assert (await limiter.consume("k")).allowed is False
