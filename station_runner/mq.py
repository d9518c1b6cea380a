from __future__ import annotations

"""
File: station_runner/mq.py
Purpose: RabbitMQ connectivity and event publishing for station-runner.
Key responsibilities:
- Declare the topic exchange.
- Publish service.completed and snapshot.tick events.
"""

import asyncio
from dataclasses import asdict
from datetime import datetime, timezone
import json
import logging
from typing import Any

import aio_pika
from aio_pika import ExchangeType

from station_runner.sim.entities import ServiceCompletedEvent

logger = logging.getLogger("station-runner.mq")


async def connect(rabbit_url: str) -> aio_pika.RobustConnection:
    """Connect to RabbitMQ with robust reconnect behavior."""
    return await aio_pika.connect_robust(rabbit_url)


async def setup_topology(channel: aio_pika.abc.AbstractRobustChannel, exchange_name: str):
    """Declare the station exchange."""
    return await channel.declare_exchange(exchange_name, ExchangeType.TOPIC, durable=True)


async def publish_event(exchange: aio_pika.abc.AbstractExchange, routing_key: str, payload: dict[str, Any]) -> None:
    """Publish a JSON message to the configured exchange."""
    body = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    msg = aio_pika.Message(
        body=body,
        content_type="application/json",
        delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
    )
    await exchange.publish(msg, routing_key=routing_key)


class MQNotifier:
    """Publishes service.completed without blocking the emitting cycle."""
    def __init__(self, exchange: aio_pika.abc.AbstractExchange) -> None:
        self.exchange = exchange
        self._pending: set[asyncio.Task] = set()

    def emit(self, event: ServiceCompletedEvent) -> None:
        payload = asdict(event)
        payload["event_type"] = "service.completed"
        payload["ts_utc"] = datetime.now(timezone.utc).isoformat()
        task = asyncio.create_task(self._publish(payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _publish(self, payload: dict[str, Any]) -> None:
        try:
            await publish_event(self.exchange, "service.completed", payload)
        except Exception as exc:  # noqa: BLE001
            logger.exception("service.completed publish failed unit_id=%s err=%s", payload.get("unit_id"), exc)

    async def drain(self) -> None:
        """Wait for in-flight publishes to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
