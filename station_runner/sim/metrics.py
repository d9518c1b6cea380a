from __future__ import annotations

"""
File: station_runner/sim/metrics.py
Purpose: Aggregate station metrics from scheduler state.
Key responsibilities:
- Cycle counts, slot utilization, mean service time.
"""

from station_runner.sim.scheduler import ServiceScheduler


def compute_metrics(scheduler: ServiceScheduler) -> dict[str, float | int]:
    """Compute station-level metrics used by the API and snapshots."""
    units = scheduler.registry.units
    slots = scheduler.slots
    service_times = scheduler.service_times
    counters = scheduler.counters

    utilization = (slots.occupied_count() / slots.capacity * 100.0) if slots.capacity else 0.0
    avg_service_time = sum(service_times) / len(service_times) if service_times else 0.0

    return {
        "pool_capacity": len(units),
        "idle_units": sum(1 for u in units if u.is_idle),
        "slot_capacity": slots.capacity,
        "occupied_slots": slots.occupied_count(),
        "slot_utilization": round(utilization, 6),
        "avg_service_time": round(avg_service_time, 6),
        "cycles_started": counters["cycles_started"],
        "cycles_completed": counters["cycles_completed"],
        "cycles_aborted": counters["cycles_aborted"],
        "ticks": counters["ticks"],
    }
