from __future__ import annotations

"""
File: station_runner/main.py
Purpose: Station runner that spawns the unit pool and runs the service scheduler.
Key responsibilities:
- Build layout, unit factory, registry, slot pool and scheduler from settings.
- Publish service.completed and snapshot.tick events (RabbitMQ or log).
- Shut the scheduler down cooperatively on SIGINT/SIGTERM.
Key entrypoints:
- StationRunner.run()
Config/env vars:
- POOL_CAPACITY, SPAWN_DELAY_*, SERVICE_DELAY_*, SIM_TICK_HZ
- START_POS, START_HEADING, EXIT_POS, STATION_SLOTS, UNIT_SPEED_*, STATION_SEED
- SNAPSHOT_INTERVAL_S, MQ_ENABLED, RABBITMQ_*
"""

import asyncio
import contextlib
from datetime import datetime, timezone
import logging
import random
import signal
from typing import Any

import aio_pika

from station_runner.mq import MQNotifier, connect, publish_event, setup_topology
from station_runner.settings import Settings, rabbit_url, settings
from station_runner.sim.bodies import KinematicUnitFactory, UnitFactory
from station_runner.sim.errors import CancellationSignaled
from station_runner.sim.metrics import compute_metrics
from station_runner.sim.notify import Notifier
from station_runner.sim.registry import UnitRegistry
from station_runner.sim.scheduler import ServiceScheduler
from station_runner.sim.slots import ResourceSlotPool
from station_runner.sim.timing import AsyncioClock, Clock, RandomDelay
from station_runner.sim.world import build_layout

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s station-runner %(message)s")
logger = logging.getLogger("station-runner")


class StationRunner:
    """Owns the scheduler and its outward event publishing."""
    def __init__(
        self,
        cfg: Settings = settings,
        clock: Clock | None = None,
        factory: UnitFactory | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.cfg = cfg
        self.layout = build_layout(cfg.start_pos, cfg.exit_pos, cfg.slot_positions, cfg.start_heading)
        rng = random.Random(cfg.station_seed)
        self.factory = factory or KinematicUnitFactory(
            tick_hz=cfg.sim_tick_hz,
            speed_min=cfg.unit_speed_min,
            speed_max=cfg.unit_speed_max,
            seed=cfg.station_seed,
        )
        self.scheduler = ServiceScheduler(
            registry=UnitRegistry(),
            slots=ResourceSlotPool(self.layout.slots),
            clock=clock or AsyncioClock(cfg.sim_tick_hz),
            spawn_delay=RandomDelay(cfg.spawn_delay_min_s, cfg.spawn_delay_max_s, rng),
            service_delay=RandomDelay(cfg.service_delay_min_s, cfg.service_delay_max_s, rng),
            start_pos=self.layout.start,
            exit_pos=self.layout.exit,
            notifier=notifier,
        )
        self._notifier_override = notifier is not None
        self.connection: aio_pika.abc.AbstractRobustConnection | None = None
        self.exchange: aio_pika.abc.AbstractExchange | None = None
        self.latest_snapshot: dict[str, Any] | None = None
        self._snapshot_task: asyncio.Task | None = None
        self._stop_requested = asyncio.Event()

    async def start(self) -> None:
        """Connect publishing (if enabled), spawn the pool and start ticking."""
        if self.cfg.mq_enabled:
            self.connection = await connect(rabbit_url())
            channel = await self.connection.channel()
            self.exchange = await setup_topology(channel, self.cfg.exchange_name)
            if not self._notifier_override:
                self.scheduler.notifier = MQNotifier(self.exchange)

        try:
            await self.scheduler.start(self.cfg.pool_capacity, self.factory, self.layout.heading)
        except Exception:
            if self.connection is not None:
                await self.connection.close()
            raise
        self._snapshot_task = asyncio.create_task(self._publish_snapshots(), name="snapshot-loop")
        logger.info(
            "station-runner started capacity=%s slots=%s layout_hash=%s mq=%s",
            self.cfg.pool_capacity,
            len(self.layout.slots),
            self.layout.layout_hash,
            self.exchange is not None,
        )

    async def run(self) -> None:
        """Run until a stop is requested, then shut down."""
        await self.start()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, self.request_stop)
        await self._stop_requested.wait()
        await self.shutdown()

    def request_stop(self) -> None:
        logger.info("stop requested")
        self._stop_requested.set()

    async def shutdown(self) -> None:
        """Cancel the scheduler and flush outstanding publishes."""
        await self.scheduler.shutdown()
        if self._snapshot_task is not None:
            await asyncio.gather(self._snapshot_task, return_exceptions=True)
        notifier = self.scheduler.notifier
        if isinstance(notifier, MQNotifier):
            await notifier.drain()
        if self.connection is not None:
            await self.connection.close()
        logger.info("station-runner stopped metrics=%s", compute_metrics(self.scheduler))

    def build_snapshot(self) -> dict[str, Any]:
        snapshot = self.scheduler.snapshot()
        snapshot["layout_hash"] = self.layout.layout_hash
        snapshot["metrics"] = compute_metrics(self.scheduler)
        return snapshot

    async def _publish_snapshots(self) -> None:
        """Refresh the latest snapshot periodically and publish it."""
        clock = self.scheduler.clock
        cancel = self.scheduler.cancel
        try:
            while True:
                self.latest_snapshot = self.build_snapshot()
                if self.exchange is not None:
                    payload = {
                        "event_type": "snapshot.tick",
                        "snapshot": self.latest_snapshot,
                        "ts_utc": datetime.now(timezone.utc).isoformat(),
                    }
                    try:
                        await publish_event(self.exchange, "snapshot.tick", payload)
                    except Exception as exc:  # noqa: BLE001
                        logger.exception("snapshot publish failed err=%s", exc)
                await clock.sleep(self.cfg.snapshot_interval_s, cancel)
        except CancellationSignaled:
            return


async def main() -> None:
    runner = StationRunner()
    await runner.run()


if __name__ == "__main__":
    asyncio.run(main())
