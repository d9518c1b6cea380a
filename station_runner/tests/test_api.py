from fastapi.testclient import TestClient

from station_runner.api import create_app
from station_runner.main import StationRunner
from station_runner.schemas import UnitView
from station_runner.settings import Settings
from station_runner.sim.entities import UnitState
from station_runner.sim.notify import InMemoryNotifier
from station_runner.sim.timing import VirtualClock


def _client() -> TestClient:
    cfg = Settings(
        mq_enabled=False,
        pool_capacity=3,
        slot_positions=((-2.0, 10.0), (2.0, 10.0)),
        sim_tick_hz=10,
    )
    runner = StationRunner(cfg=cfg, clock=VirtualClock(tick_hz=10), notifier=InMemoryNotifier())
    return TestClient(create_app(runner))


def test_health_and_config():
    with _client() as client:
        assert client.get("/health").json() == {"status": "ok"}

        config = client.get("/api/config").json()
        assert config["pool_capacity"] == 3
        assert config["slots"] == [[-2.0, 10.0], [2.0, 10.0]]
        assert config["sim_tick_hz"] == 10
        assert len(config["layout_hash"]) == 64


def test_snapshot_and_metrics():
    with _client() as client:
        snapshot = client.get("/api/snapshot").json()
        assert [u["id"] for u in snapshot["units"]] == [0, 1, 2]
        assert len(snapshot["slots"]) == 2
        assert sum(1 for s in snapshot["slots"] if s["unit_id"] is not None) <= 1

        metrics = client.get("/api/metrics").json()
        assert metrics["pool_capacity"] == 3
        assert metrics["slot_capacity"] == 2
        assert metrics["cycles_completed"] == 0


def test_unit_view_shares_core_states():
    assert UnitView.model_fields["state"].annotation == UnitState
    view = UnitView(id=0, state="moving_to_exit")
    assert (view.x, view.y) == (None, None)
