from __future__ import annotations

"""
File: station_runner/sim/slots.py
Purpose: Fixed-size pool of service slots at the station.
Key responsibilities:
- Hand out the lowest-index free slot and bind it to a unit.
- Release slots and reject double releases.
"""

import logging
from typing import Sequence

from station_runner.sim.entities import Slot
from station_runner.sim.errors import NoFreeSlotError, SlotNotOccupiedError

logger = logging.getLogger("station-runner.slots")


class ResourceSlotPool:
    """Slot allocator; capacity is fixed at construction."""
    def __init__(self, positions: Sequence[tuple[float, float]]) -> None:
        if not positions:
            raise ValueError("slot pool requires at least one slot position")
        self._slots = [Slot(id=idx, x=float(x), y=float(y)) for idx, (x, y) in enumerate(positions)]

    @property
    def slots(self) -> tuple[Slot, ...]:
        return tuple(self._slots)

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def occupied_count(self) -> int:
        return sum(1 for slot in self._slots if not slot.is_free)

    def free_count(self) -> int:
        return self.capacity - self.occupied_count()

    def acquire_free_slot(self, unit_id: int) -> Slot:
        """Bind the first free slot to `unit_id` and return it."""
        for slot in self._slots:
            if slot.is_free:
                slot.unit_id = unit_id
                logger.debug("slot acquired slot_id=%s unit_id=%s", slot.id, unit_id)
                return slot
        raise NoFreeSlotError(f"no free slot for unit {unit_id} (capacity={self.capacity})")

    def release_slot(self, slot: Slot) -> None:
        """Mark `slot` free again."""
        owned = self._slots[slot.id] if 0 <= slot.id < len(self._slots) else None
        if owned is None or owned is not slot:
            raise ValueError(f"slot {slot.id} does not belong to this pool")
        if slot.is_free:
            raise SlotNotOccupiedError(f"slot {slot.id} is not occupied")
        logger.debug("slot released slot_id=%s unit_id=%s", slot.id, slot.unit_id)
        slot.unit_id = None
