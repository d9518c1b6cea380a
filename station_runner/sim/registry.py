from __future__ import annotations

"""
File: station_runner/sim/registry.py
Purpose: Bounded registry of pooled units.
Key responsibilities:
- Spawn the whole pool once at startup, or fail without a partial pool.
- Deterministic idle lookup in registry order.
"""

import logging

from station_runner.sim.bodies import UnitFactory
from station_runner.sim.entities import Unit
from station_runner.sim.errors import PoolInitError

logger = logging.getLogger("station-runner.registry")


class UnitRegistry:
    """Holds every unit in spawn order."""
    def __init__(self) -> None:
        self._units: list[Unit] = []

    @property
    def units(self) -> tuple[Unit, ...]:
        return tuple(self._units)

    def __len__(self) -> int:
        return len(self._units)

    def get(self, unit_id: int) -> Unit | None:
        if 0 <= unit_id < len(self._units):
            return self._units[unit_id]
        return None

    async def initialize(
        self,
        capacity: int,
        factory: UnitFactory,
        start: tuple[float, float],
        heading: float = 0.0,
    ) -> list[Unit]:
        """Spawn `capacity` inactive idle units at `start`."""
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        if self._units:
            raise PoolInitError("unit pool already initialized")

        start_x, start_y = start
        units: list[Unit] = []
        for idx in range(capacity):
            try:
                handle = await factory.spawn(start_x, start_y, heading)
            except Exception as exc:  # noqa: BLE001
                raise PoolInitError(f"spawn failed for unit {idx} of {capacity}: {exc}") from exc
            handle.set_active(False)
            units.append(Unit(id=idx, handle=handle, x=start_x, y=start_y))

        self._units = units
        logger.info("unit pool ready capacity=%s start=%s", capacity, start)
        return list(units)

    def find_idle(self) -> Unit | None:
        """Return the first idle unit in registry order, if any."""
        for unit in self._units:
            if unit.is_idle:
                return unit
        return None

    def idle_count(self) -> int:
        return sum(1 for unit in self._units if unit.is_idle)
