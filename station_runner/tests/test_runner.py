import asyncio
from dataclasses import replace

from station_runner.main import StationRunner
from station_runner.settings import Settings
from station_runner.sim.notify import InMemoryNotifier
from station_runner.sim.timing import VirtualClock


def _settings(**overrides) -> Settings:
    base = Settings(
        mq_enabled=False,
        pool_capacity=4,
        spawn_delay_min_s=5.0,
        spawn_delay_max_s=5.0,
        service_delay_min_s=3.0,
        service_delay_max_s=3.0,
        start_pos=(0.0, -20.0),
        exit_pos=(20.0, 10.0),
        slot_positions=((-2.0, 10.0), (2.0, 10.0)),
        sim_tick_hz=10,
        unit_speed_min=10.0,
        unit_speed_max=10.0,
        snapshot_interval_s=1.0,
    )
    return replace(base, **overrides)


def test_runner_serves_units_and_reports_metrics():
    async def scenario():
        clock = VirtualClock(tick_hz=10)
        notifier = InMemoryNotifier()
        runner = StationRunner(cfg=_settings(), clock=clock, notifier=notifier)
        await runner.start()
        for _ in range(30):
            await clock.advance(1.0)
        snapshot = runner.latest_snapshot
        await runner.shutdown()
        return runner, notifier, snapshot

    runner, notifier, snapshot = asyncio.run(scenario())
    metrics = snapshot["metrics"]
    assert snapshot["layout_hash"] == runner.layout.layout_hash
    assert len(snapshot["units"]) == 4
    assert len(snapshot["slots"]) == 2
    assert metrics["cycles_completed"] >= 3
    assert metrics["avg_service_time"] == 3.0
    assert len(notifier.events) == len(runner.scheduler.service_times)
    assert all(e.service_time_s == 3.0 for e in notifier.events)


def test_runner_snapshot_shape():
    async def scenario():
        clock = VirtualClock(tick_hz=10)
        runner = StationRunner(cfg=_settings(pool_capacity=2), clock=clock, notifier=InMemoryNotifier())
        await runner.start()
        await clock.advance(0.0)
        snapshot = runner.build_snapshot()
        await runner.shutdown()
        return snapshot

    snapshot = asyncio.run(scenario())
    assert set(snapshot) == {"sim_time_s", "units", "slots", "counters", "metrics", "layout_hash"}
    assert snapshot["units"][0]["state"] == "moving_to_slot"
    assert snapshot["units"][1]["state"] == "idle"
    assert snapshot["slots"][0]["unit_id"] == 0
    assert snapshot["metrics"]["occupied_slots"] == 1
