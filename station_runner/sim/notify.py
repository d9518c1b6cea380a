from __future__ import annotations

"""
File: station_runner/sim/notify.py
Purpose: Fire-and-forget sinks for service completion events.
"""

import logging
from typing import Protocol

from station_runner.sim.entities import ServiceCompletedEvent

logger = logging.getLogger("station-runner.notify")


class Notifier(Protocol):
    def emit(self, event: ServiceCompletedEvent) -> None:
        ...


class InMemoryNotifier:
    """Collects events in order."""
    def __init__(self) -> None:
        self.events: list[ServiceCompletedEvent] = []

    def emit(self, event: ServiceCompletedEvent) -> None:
        self.events.append(event)


class LoggingNotifier:
    """Writes each event to the log."""
    def emit(self, event: ServiceCompletedEvent) -> None:
        logger.info(
            "service completed unit_id=%s slot_id=%s service_time_s=%.3f sim_time_s=%.3f",
            event.unit_id,
            event.slot_id,
            event.service_time_s,
            event.sim_time_s,
        )
