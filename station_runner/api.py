from __future__ import annotations

"""
File: station_runner/api.py
Purpose: HTTP status surface for the station runner.
Key responsibilities:
- Start the runner on app startup and stop it on shutdown.
- Expose health, config, snapshot and metrics endpoints.
Key entrypoints:
- create_app()
- /health, /api/* endpoints
"""

import logging

from fastapi import FastAPI

from station_runner.main import StationRunner
from station_runner.schemas import ConfigResponse, SnapshotResponse
from station_runner.sim.metrics import compute_metrics

logger = logging.getLogger("station-runner.api")


def create_app(runner: StationRunner | None = None) -> FastAPI:
    """Build the FastAPI app around a runner (a default one if omitted)."""
    app = FastAPI(title="station-runner", version="1.0.0")
    app.state.runner = runner if runner is not None else StationRunner()

    @app.on_event("startup")
    async def startup_event() -> None:
        """Spawn the pool and start the scheduler."""
        await app.state.runner.start()

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        """Cancel every in-flight cycle."""
        await app.state.runner.shutdown()

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness/readiness endpoint."""
        return {"status": "ok"}

    @app.get("/api/config", response_model=ConfigResponse)
    async def config() -> ConfigResponse:
        cfg = app.state.runner.cfg
        layout = app.state.runner.layout
        return ConfigResponse(
            pool_capacity=cfg.pool_capacity,
            spawn_delay_s=(cfg.spawn_delay_min_s, cfg.spawn_delay_max_s),
            service_delay_s=(cfg.service_delay_min_s, cfg.service_delay_max_s),
            start=layout.start,
            exit=layout.exit,
            slots=list(layout.slots),
            sim_tick_hz=cfg.sim_tick_hz,
            layout_hash=layout.layout_hash,
        )

    @app.get("/api/snapshot", response_model=SnapshotResponse)
    async def snapshot() -> SnapshotResponse:
        """Current unit/slot state with counters and metrics."""
        return SnapshotResponse(**app.state.runner.build_snapshot())

    @app.get("/api/metrics")
    async def metrics() -> dict[str, float | int]:
        return compute_metrics(app.state.runner.scheduler)

    return app


app = create_app()
