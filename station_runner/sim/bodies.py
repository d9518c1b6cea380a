from __future__ import annotations

"""
File: station_runner/sim/bodies.py
Purpose: Controllable unit bodies and the factory that spawns them.
Key responsibilities:
- Define the handle/factory contracts consumed by the scheduler.
- Provide a straight-line kinematic body advanced one frame per poll.
"""

from dataclasses import dataclass
from math import hypot
import random
from typing import Protocol

from station_runner.sim.errors import SpawnError


class UnitHandle(Protocol):
    """Body the scheduler steers; none of these calls may block."""

    def move_towards(self, x: float, y: float) -> bool:
        ...

    def teleport_to(self, x: float, y: float) -> None:
        ...

    def set_active(self, active: bool) -> None:
        ...


class UnitFactory(Protocol):
    async def spawn(self, x: float, y: float, heading: float) -> UnitHandle:
        ...


@dataclass
class KinematicUnit:
    """Body that travels toward its target at `speed` units per second."""
    x: float
    y: float
    heading: float
    speed: float
    dt: float
    active: bool = False
    arrive_tolerance: float = 1e-6
    distance_traveled: float = 0.0

    def move_towards(self, x: float, y: float) -> bool:
        """Advance one frame toward (x, y); return True once there."""
        dx = x - self.x
        dy = y - self.y
        distance_to_target = hypot(dx, dy)
        step_distance = self.speed * self.dt

        if distance_to_target <= self.arrive_tolerance:
            return True

        travel = min(distance_to_target, step_distance)
        ratio = travel / distance_to_target
        self.x += dx * ratio
        self.y += dy * ratio
        self.distance_traveled += travel
        return distance_to_target <= step_distance + self.arrive_tolerance

    def teleport_to(self, x: float, y: float) -> None:
        self.x = x
        self.y = y

    def set_active(self, active: bool) -> None:
        self.active = active


class KinematicUnitFactory:
    """Spawns kinematic bodies with seeded speeds.

    `fail_after` makes the factory raise SpawnError once that many units have
    been produced.
    """
    def __init__(
        self,
        tick_hz: int,
        speed_min: float,
        speed_max: float,
        seed: int = 0,
        fail_after: int | None = None,
    ) -> None:
        if tick_hz <= 0:
            raise ValueError("tick_hz must be > 0")
        if speed_min <= 0 or speed_max < speed_min:
            raise ValueError("unit speeds must satisfy 0 < speed_min <= speed_max")
        self.dt = 1.0 / tick_hz
        self.speed_min = speed_min
        self.speed_max = speed_max
        self.fail_after = fail_after
        self.rng = random.Random(seed)
        self.spawned: list[KinematicUnit] = []

    async def spawn(self, x: float, y: float, heading: float) -> KinematicUnit:
        if self.fail_after is not None and len(self.spawned) >= self.fail_after:
            raise SpawnError(f"factory exhausted after {self.fail_after} units")
        unit = KinematicUnit(
            x=x,
            y=y,
            heading=heading,
            speed=round(self.rng.uniform(self.speed_min, self.speed_max), 3),
            dt=self.dt,
        )
        self.spawned.append(unit)
        return unit
