import asyncio
import random

import pytest

from station_runner.sim.errors import CancellationSignaled
from station_runner.sim.timing import AsyncioClock, CancellationContext, RandomDelay, VirtualClock


def test_random_delay_is_bounded_and_reproducible():
    delay_a = RandomDelay(4.0, 8.0, random.Random(42))
    delay_b = RandomDelay(4.0, 8.0, random.Random(42))
    draws_a = [delay_a() for _ in range(200)]
    draws_b = [delay_b() for _ in range(200)]

    assert draws_a == draws_b
    assert all(4.0 <= d < 8.0 for d in draws_a)


def test_zero_width_range_is_fixed():
    assert RandomDelay(5.0, 5.0)() == 5.0
    assert RandomDelay.fixed(3.0)() == 3.0


def test_invalid_range_rejected():
    with pytest.raises(ValueError):
        RandomDelay(4.0, 2.0)
    with pytest.raises(ValueError):
        RandomDelay(-1.0, 2.0)


def test_virtual_clock_wakes_sleepers_in_time_order():
    async def scenario():
        clock = VirtualClock(tick_hz=10)
        cancel = CancellationContext()
        woke: list[tuple[str, float]] = []

        async def sleeper(name: str, seconds: float) -> None:
            await clock.sleep(seconds, cancel)
            woke.append((name, clock.now()))

        tasks = [asyncio.create_task(sleeper("late", 3.0)), asyncio.create_task(sleeper("early", 1.0))]
        await clock.advance(0.5)
        assert woke == []
        await clock.advance(1.0)
        assert woke == [("early", 1.0)]
        await clock.advance(2.0)
        await asyncio.gather(*tasks)
        return woke, clock.now()

    woke, now = asyncio.run(scenario())
    assert woke == [("early", 1.0), ("late", 3.0)]
    assert now == 3.5


def test_virtual_clock_sleep_aborts_on_cancel():
    async def scenario():
        clock = VirtualClock()
        cancel = CancellationContext()
        task = asyncio.create_task(clock.sleep(10.0, cancel))
        await clock.settle()
        cancel.cancel()
        with pytest.raises(CancellationSignaled):
            await task
        return clock.pending()

    assert asyncio.run(scenario()) == 0


def test_sleep_after_cancel_raises_immediately():
    async def scenario():
        cancel = CancellationContext()
        cancel.cancel()
        with pytest.raises(CancellationSignaled):
            await VirtualClock().next_frame(cancel)
        with pytest.raises(CancellationSignaled):
            await AsyncioClock(tick_hz=30).sleep(5.0, cancel)

    asyncio.run(scenario())


def test_asyncio_clock_cancel_interrupts_long_sleep():
    async def scenario():
        clock = AsyncioClock(tick_hz=100)
        cancel = CancellationContext()
        loop = asyncio.get_running_loop()
        await clock.sleep(0.01, cancel)
        loop.call_later(0.02, cancel.cancel)
        started = loop.time()
        with pytest.raises(CancellationSignaled):
            await clock.sleep(30.0, cancel)
        return loop.time() - started

    assert asyncio.run(scenario()) < 5.0
