from __future__ import annotations

"""
File: station_runner/sim/timing.py
Purpose: Delay sources, clocks and cooperative cancellation for the scheduler.
Key responsibilities:
- Draw bounded random delays from a seedable RNG.
- Suspend tasks for a duration or one frame, aborting on cancellation.
- Provide a virtual clock so scheduling runs without wall-clock waits.
"""

import asyncio
import heapq
import itertools
import random
import time
from typing import Protocol

from station_runner.sim.errors import CancellationSignaled


class CancellationContext:
    """Shutdown signal handed to every suspension point."""
    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancellationSignaled("shutdown requested")

    async def wait(self) -> None:
        await self._event.wait()


class RandomDelay:
    """Uniform delay in [low, high); a zero-width range always yields `low`."""
    def __init__(self, low: float, high: float, rng: random.Random | None = None) -> None:
        if low < 0 or high < low:
            raise ValueError(f"invalid delay range [{low}, {high})")
        self.low = float(low)
        self.high = float(high)
        self.rng = rng if rng is not None else random.Random()

    @classmethod
    def fixed(cls, value: float) -> RandomDelay:
        return cls(value, value)

    def __call__(self) -> float:
        if self.high == self.low:
            return self.low
        return self.low + (self.high - self.low) * self.rng.random()


class Clock(Protocol):
    frame_s: float

    def now(self) -> float:
        ...

    async def sleep(self, seconds: float, cancel: CancellationContext) -> None:
        ...

    async def next_frame(self, cancel: CancellationContext) -> None:
        ...


class AsyncioClock:
    """Wall-clock implementation backed by the running event loop."""
    def __init__(self, tick_hz: int) -> None:
        if tick_hz <= 0:
            raise ValueError("tick_hz must be > 0")
        self.frame_s = 1.0 / tick_hz
        self._origin = time.monotonic()

    def now(self) -> float:
        return time.monotonic() - self._origin

    async def sleep(self, seconds: float, cancel: CancellationContext) -> None:
        cancel.raise_if_cancelled()
        try:
            await asyncio.wait_for(cancel.wait(), timeout=max(0.0, seconds))
        except asyncio.TimeoutError:
            return
        raise CancellationSignaled("sleep interrupted by shutdown")

    async def next_frame(self, cancel: CancellationContext) -> None:
        await self.sleep(self.frame_s, cancel)


class VirtualClock:
    """Manually advanced clock.

    Sleepers park on futures ordered by wake time; `advance` releases them one
    at a time and lets the loop settle in between so interleavings are
    reproducible.
    """
    def __init__(self, tick_hz: int = 30, settle_passes: int = 20) -> None:
        if tick_hz <= 0:
            raise ValueError("tick_hz must be > 0")
        self.frame_s = 1.0 / tick_hz
        self.settle_passes = settle_passes
        self._now = 0.0
        self._sleepers: list[tuple[float, int, asyncio.Future]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def pending(self) -> int:
        return sum(1 for _, _, waiter in self._sleepers if not waiter.done())

    async def sleep(self, seconds: float, cancel: CancellationContext) -> None:
        cancel.raise_if_cancelled()
        waiter = asyncio.get_running_loop().create_future()
        heapq.heappush(self._sleepers, (self._now + max(0.0, seconds), next(self._seq), waiter))
        interrupted = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({waiter, interrupted}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            interrupted.cancel()
            if not waiter.done():
                waiter.cancel()
        if cancel.cancelled:
            raise CancellationSignaled("sleep interrupted by shutdown")

    async def next_frame(self, cancel: CancellationContext) -> None:
        await self.sleep(self.frame_s, cancel)

    async def settle(self) -> None:
        for _ in range(self.settle_passes):
            await asyncio.sleep(0)

    async def advance(self, seconds: float) -> None:
        """Move time forward, waking every sleeper due on the way."""
        target = self._now + seconds
        while True:
            await self.settle()
            if not self._sleepers or self._sleepers[0][0] > target + 1e-9:
                break
            wake_at, _, waiter = heapq.heappop(self._sleepers)
            self._now = max(self._now, wake_at)
            if not waiter.done():
                waiter.set_result(None)
        self._now = target
        await self.settle()
