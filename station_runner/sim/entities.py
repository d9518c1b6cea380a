from __future__ import annotations

"""
File: station_runner/sim/entities.py
Purpose: Core dataclasses and type aliases for station state.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from station_runner.sim.bodies import UnitHandle


UnitState = Literal["idle", "activating", "moving_to_slot", "in_service", "moving_to_exit"]


@dataclass
class Unit:
    """Pooled unit tracked by the scheduler.

    `handle` is the controllable body produced by the unit factory; the
    scheduler is the only writer of `state` and `slot_id`.
    """
    id: int
    handle: UnitHandle
    x: float
    y: float
    state: UnitState = "idle"
    slot_id: int | None = None
    cycles_completed: int = 0

    @property
    def is_idle(self) -> bool:
        return self.state == "idle"


@dataclass
class Slot:
    """Service slot at the station with a fixed coordinate."""
    id: int
    x: float
    y: float
    unit_id: int | None = None

    @property
    def is_free(self) -> bool:
        return self.unit_id is None


@dataclass(frozen=True)
class ServiceCompletedEvent:
    """Emitted when a unit finishes its service hold and frees its slot."""
    unit_id: int
    slot_id: int
    service_time_s: float
    sim_time_s: float
