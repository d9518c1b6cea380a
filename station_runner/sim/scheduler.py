from __future__ import annotations

"""
File: station_runner/sim/scheduler.py
Purpose: Activation loop and per-unit service cycles for the station.
Key responsibilities:
- Spawn the unit pool once, then activate an idle unit on every tick.
- Drive each unit through slot -> service hold -> exit -> idle.
- Stop every suspended cycle when shutdown is requested.
Key entrypoints:
- ServiceScheduler.start()
- ServiceScheduler.shutdown()
"""

import asyncio
import logging
from typing import Any

from station_runner.sim.bodies import UnitFactory
from station_runner.sim.entities import ServiceCompletedEvent, Slot, Unit
from station_runner.sim.errors import CancellationSignaled, NoFreeSlotError, SlotNotOccupiedError
from station_runner.sim.notify import LoggingNotifier, Notifier
from station_runner.sim.registry import UnitRegistry
from station_runner.sim.slots import ResourceSlotPool
from station_runner.sim.timing import CancellationContext, Clock, RandomDelay

logger = logging.getLogger("station-runner.scheduler")

# Unit.x/y only holds the last arrival point while one of these is active.
EN_ROUTE = {"moving_to_slot", "moving_to_exit"}


class ServiceScheduler:
    """Cycles pooled units through the station's service slots.

    Every state change happens on the event loop thread between suspension
    points, so slot allocation and unit state need no locking.
    """
    def __init__(
        self,
        registry: UnitRegistry,
        slots: ResourceSlotPool,
        clock: Clock,
        spawn_delay: RandomDelay,
        service_delay: RandomDelay,
        start_pos: tuple[float, float],
        exit_pos: tuple[float, float],
        notifier: Notifier | None = None,
        cancel: CancellationContext | None = None,
    ) -> None:
        """Initialize the scheduler with its collaborators."""
        self.registry = registry
        self.slots = slots
        self.clock = clock
        self.spawn_delay = spawn_delay
        self.service_delay = service_delay
        self.start_pos = start_pos
        self.exit_pos = exit_pos
        self.notifier = notifier if notifier is not None else LoggingNotifier()
        self.cancel = cancel if cancel is not None else CancellationContext()

        self.cycle_tasks: dict[int, asyncio.Task] = {}
        self.service_times: list[float] = []
        self.counters: dict[str, int] = {
            "ticks": 0,
            "idle_ticks": 0,
            "cycles_started": 0,
            "cycles_completed": 0,
            "cycles_aborted": 0,
        }
        self._loop_task: asyncio.Task | None = None

    async def start(self, capacity: int, factory: UnitFactory, heading: float = 0.0) -> None:
        """Build the unit pool and launch the activation loop.

        PoolInitError from the registry propagates; nothing is started then.
        """
        await self.registry.initialize(capacity, factory, self.start_pos, heading)
        self._loop_task = asyncio.create_task(self.run(), name="activation-loop")
        logger.info(
            "scheduler started capacity=%s slots=%s spawn_delay=[%s,%s) service_delay=[%s,%s)",
            capacity,
            self.slots.capacity,
            self.spawn_delay.low,
            self.spawn_delay.high,
            self.service_delay.low,
            self.service_delay.high,
        )

    async def run(self) -> None:
        """Tick, then wait a random spawn delay, until cancelled."""
        try:
            while True:
                self.cancel.raise_if_cancelled()
                self.tick()
                await self.clock.sleep(self.spawn_delay(), self.cancel)
        except CancellationSignaled:
            logger.info("activation loop stopped ticks=%s", self.counters["ticks"])

    def tick(self) -> Unit | None:
        """Start a service cycle for the first idle unit, if one can be served."""
        self.counters["ticks"] += 1
        unit = self.registry.find_idle()
        if unit is None:
            self.counters["idle_ticks"] += 1
            logger.debug("tick skipped: no idle unit")
            return None
        if self.slots.free_count() == 0:
            self.counters["idle_ticks"] += 1
            logger.debug("tick skipped: no free slot")
            return None

        unit.state = "activating"
        task = asyncio.create_task(self._service_cycle(unit, self.cancel), name=f"service-cycle-{unit.id}")
        self.cycle_tasks[unit.id] = task
        task.add_done_callback(lambda done, uid=unit.id: self._cleanup_cycle(uid, done))
        self.counters["cycles_started"] += 1
        logger.info("unit activated unit_id=%s t=%.3f", unit.id, self.clock.now())
        return unit

    def _cleanup_cycle(self, unit_id: int, task: asyncio.Task) -> None:
        """Forget a finished cycle task unless a newer one replaced it."""
        if self.cycle_tasks.get(unit_id) is task:
            self.cycle_tasks.pop(unit_id, None)

    async def _service_cycle(self, unit: Unit, cancel: CancellationContext) -> None:
        """Run one cycle; contain every failure to this unit."""
        try:
            await self._run_cycle(unit, cancel)
        except CancellationSignaled:
            logger.debug("service cycle cancelled unit_id=%s state=%s", unit.id, unit.state)
        except Exception as exc:  # noqa: BLE001
            self.counters["cycles_aborted"] += 1
            logger.exception("service cycle failed unit_id=%s state=%s err=%s", unit.id, unit.state, exc)

    async def _run_cycle(self, unit: Unit, cancel: CancellationContext) -> None:
        cancel.raise_if_cancelled()
        unit.handle.set_active(True)
        try:
            slot = self.slots.acquire_free_slot(unit.id)
        except NoFreeSlotError as exc:
            unit.handle.set_active(False)
            unit.state = "idle"
            self.counters["cycles_aborted"] += 1
            logger.warning("slot acquire failed, unit returned to idle unit_id=%s err=%s", unit.id, exc)
            return

        unit.slot_id = slot.id
        unit.state = "moving_to_slot"
        await self._travel(unit, slot.x, slot.y, cancel)

        unit.state = "in_service"
        service_time_s = self.service_delay()
        await self.clock.sleep(service_time_s, cancel)

        if not self._release(unit, slot):
            return
        self.service_times.append(service_time_s)
        self._notify(
            ServiceCompletedEvent(
                unit_id=unit.id,
                slot_id=slot.id,
                service_time_s=service_time_s,
                sim_time_s=self.clock.now(),
            )
        )

        unit.state = "moving_to_exit"
        await self._travel(unit, self.exit_pos[0], self.exit_pos[1], cancel)

        start_x, start_y = self.start_pos
        unit.handle.teleport_to(start_x, start_y)
        unit.x, unit.y = start_x, start_y
        unit.handle.set_active(False)
        unit.state = "idle"
        unit.cycles_completed += 1
        self.counters["cycles_completed"] += 1
        logger.info("unit returned to idle unit_id=%s cycles=%s", unit.id, unit.cycles_completed)

    async def _travel(self, unit: Unit, x: float, y: float, cancel: CancellationContext) -> None:
        """Poll the unit's movement once per frame until it arrives."""
        cancel.raise_if_cancelled()
        while not unit.handle.move_towards(x, y):
            await self.clock.next_frame(cancel)
        unit.x, unit.y = x, y

    def _release(self, unit: Unit, slot: Slot) -> bool:
        try:
            self.slots.release_slot(slot)
        except SlotNotOccupiedError as exc:
            self.counters["cycles_aborted"] += 1
            logger.error("slot release failed unit_id=%s slot_id=%s err=%s", unit.id, slot.id, exc)
            return False
        unit.slot_id = None
        return True

    def _notify(self, event: ServiceCompletedEvent) -> None:
        try:
            self.notifier.emit(event)
        except Exception as exc:  # noqa: BLE001
            logger.exception("notifier error unit_id=%s err=%s", event.unit_id, exc)

    async def shutdown(self) -> None:
        """Signal cancellation and wait for the loop and every cycle to unwind."""
        self.cancel.cancel()
        tasks = list(self.cycle_tasks.values())
        if self._loop_task is not None:
            tasks.append(self._loop_task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(
            "scheduler stopped completed=%s aborted=%s non_idle=%s",
            self.counters["cycles_completed"],
            self.counters["cycles_aborted"],
            len(self.registry) - self.registry.idle_count(),
        )

    def snapshot(self) -> dict[str, Any]:
        """Return a serializable snapshot of units, slots and counters."""
        return {
            "sim_time_s": round(self.clock.now(), 3),
            "units": [
                {
                    "id": u.id,
                    "state": u.state,
                    "x": None if u.state in EN_ROUTE else round(u.x, 3),
                    "y": None if u.state in EN_ROUTE else round(u.y, 3),
                    "slot_id": u.slot_id,
                    "cycles_completed": u.cycles_completed,
                }
                for u in self.registry.units
            ],
            "slots": [
                {"id": s.id, "x": s.x, "y": s.y, "unit_id": s.unit_id}
                for s in self.slots.slots
            ],
            "counters": dict(self.counters),
        }
