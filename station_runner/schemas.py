from __future__ import annotations

"""
File: station_runner/schemas.py
Purpose: Pydantic models for the status API.
Key entrypoints:
- SnapshotResponse, ConfigResponse
"""

from pydantic import BaseModel
from typing import Optional

from station_runner.sim.entities import UnitState


class UnitView(BaseModel):
    """Unit state as exposed by the API; x/y are None while the unit is travelling."""
    id: int
    state: UnitState
    x: Optional[float] = None
    y: Optional[float] = None
    slot_id: Optional[int] = None
    cycles_completed: int = 0


class SlotView(BaseModel):
    """Slot occupancy as exposed by the API."""
    id: int
    x: float
    y: float
    unit_id: Optional[int] = None


class SnapshotResponse(BaseModel):
    """Response body for /api/snapshot."""
    sim_time_s: float
    layout_hash: str
    units: list[UnitView]
    slots: list[SlotView]
    counters: dict[str, int]
    metrics: dict[str, float]


class ConfigResponse(BaseModel):
    """Response body for /api/config."""
    pool_capacity: int
    spawn_delay_s: tuple[float, float]
    service_delay_s: tuple[float, float]
    start: tuple[float, float]
    exit: tuple[float, float]
    slots: list[tuple[float, float]]
    sim_tick_hz: int
    layout_hash: str
