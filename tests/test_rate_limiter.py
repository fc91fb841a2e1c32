"""Tests for the sliding-window provider rate limiter."""

import asyncio

import pytest

from construct.core.errors import RateLimitExceededError
from construct.providers.rate_limiter import RateLimiter


class FakeClock:
    """Manual clock whose sleep advances time instead of waiting."""

    def __init__(self) -> None:
        self.now = 1000.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay
        await asyncio.sleep(0)


class GatedClock(FakeClock):
    """Clock whose sleep blocks until the test opens the gate."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        await self.gate.wait()
        self.now += delay


@pytest.mark.asyncio
async def test_within_budget_does_not_wait():
    clock = FakeClock()
    limiter = RateLimiter("fake", 3, clock=clock, sleep=clock.sleep)

    waits = [await limiter.acquire() for _ in range(3)]

    assert waits == [0.0, 0.0, 0.0]
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_wait_mode_delays_until_window_frees():
    """With one request per minute, a call one second later waits about 59 seconds."""
    clock = FakeClock()
    limiter = RateLimiter("fake", 1, clock=clock, sleep=clock.sleep)

    await limiter.acquire()
    clock.now += 1
    waited = await limiter.acquire()

    assert clock.sleeps == [pytest.approx(59.0)]
    assert waited == pytest.approx(59.0)


@pytest.mark.asyncio
async def test_budget_recovers_after_window():
    clock = FakeClock()
    limiter = RateLimiter("fake", 2, clock=clock, sleep=clock.sleep)

    await limiter.acquire()
    await limiter.acquire()
    clock.now += 60
    assert await limiter.acquire() == 0.0
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_fail_mode_raises_immediately():
    clock = FakeClock()
    limiter = RateLimiter("fake", 1, mode="fail", clock=clock, sleep=clock.sleep)

    await limiter.acquire()
    with pytest.raises(RateLimitExceededError) as exc_info:
        await limiter.acquire()

    assert exc_info.value.provider_name == "fake"
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_full_queue_rejects_new_waiters():
    clock = GatedClock()
    limiter = RateLimiter("fake", 1, max_queued=1, clock=clock, sleep=clock.sleep)

    await limiter.acquire()
    queued = asyncio.create_task(limiter.acquire())
    while not clock.sleeps:
        await asyncio.sleep(0)
    assert limiter.waiting == 1

    with pytest.raises(RateLimitExceededError, match="queue is full"):
        await limiter.acquire()

    clock.gate.set()
    assert await queued == pytest.approx(60.0)
    assert limiter.waiting == 0


@pytest.mark.asyncio
async def test_waiters_are_served_in_order():
    clock = FakeClock()
    limiter = RateLimiter("fake", 1, clock=clock, sleep=clock.sleep)
    order: list[int] = []

    async def call(i: int) -> None:
        await limiter.acquire()
        order.append(i)

    await asyncio.gather(*(call(i) for i in range(4)))

    assert order == [0, 1, 2, 3]


def test_invalid_budget():
    with pytest.raises(ValueError):
        RateLimiter("fake", 0)
