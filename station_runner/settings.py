"""
File: station_runner/settings.py
Purpose: Environment-backed configuration for station-runner.
Key responsibilities:
- Parse pool, timing and layout settings.
- Parse RabbitMQ settings for event publishing.
"""

from dataclasses import dataclass, field
import os


DEFAULT_SLOTS = "-6:10,-2:10,2:10,6:10"


def _int_env(name: str, default: int = 0) -> int:
    """Parse an integer env var with a fallback."""
    raw = os.getenv(name, "")
    if raw == "":
        return default
    return int(raw)


def _bool_env(name: str, default: bool = False) -> bool:
    """Parse a boolean env var (1/true/yes) with a fallback."""
    raw = os.getenv(name, "")
    if raw == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def parse_point(raw: str) -> tuple[float, float]:
    """Parse an `x:y` coordinate."""
    parts = raw.strip().split(":")
    if len(parts) != 2:
        raise ValueError(f"invalid coordinate: {raw!r}")
    return float(parts[0]), float(parts[1])


def parse_points(raw: str) -> tuple[tuple[float, float], ...]:
    """Parse a comma separated list of `x:y` coordinates."""
    return tuple(parse_point(item) for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Station configuration parsed from environment."""
    rabbit_host: str = os.getenv("RABBITMQ_HOST", "rabbitmq")
    rabbit_port: int = int(os.getenv("RABBITMQ_PORT", "5672"))
    rabbit_user: str = os.getenv("RABBITMQ_USER", "station")
    rabbit_pass: str = os.getenv("RABBITMQ_PASS", "stationpass")
    exchange_name: str = "station.events"
    mq_enabled: bool = _bool_env("MQ_ENABLED", False)
    pool_capacity: int = _int_env("POOL_CAPACITY", 8)
    spawn_delay_min_s: float = float(os.getenv("SPAWN_DELAY_MIN_S", "4"))
    spawn_delay_max_s: float = float(os.getenv("SPAWN_DELAY_MAX_S", "8"))
    service_delay_min_s: float = float(os.getenv("SERVICE_DELAY_MIN_S", "2"))
    service_delay_max_s: float = float(os.getenv("SERVICE_DELAY_MAX_S", "4"))
    start_pos: tuple[float, float] = parse_point(os.getenv("START_POS", "0:-20"))
    start_heading: float = float(os.getenv("START_HEADING", "90"))
    exit_pos: tuple[float, float] = parse_point(os.getenv("EXIT_POS", "20:10"))
    slot_positions: tuple[tuple[float, float], ...] = field(
        default_factory=lambda: parse_points(os.getenv("STATION_SLOTS", DEFAULT_SLOTS))
    )
    sim_tick_hz: int = _int_env("SIM_TICK_HZ", 30)
    unit_speed_min: float = float(os.getenv("UNIT_SPEED_MIN", "4.0"))
    unit_speed_max: float = float(os.getenv("UNIT_SPEED_MAX", "6.0"))
    station_seed: int = _int_env("STATION_SEED", 42)
    snapshot_interval_s: float = float(os.getenv("SNAPSHOT_INTERVAL_S", "1.0"))


settings = Settings()


def rabbit_url() -> str:
    return f"amqp://{settings.rabbit_user}:{settings.rabbit_pass}@{settings.rabbit_host}:{settings.rabbit_port}/"
