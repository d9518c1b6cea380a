from __future__ import annotations

"""
File: station_runner/sim/world.py
Purpose: Station layout built from configuration.
Key responsibilities:
- Validate start/exit/slot coordinates.
- Compute a layout hash for comparability across runs.
"""

from dataclasses import dataclass
import hashlib
import json
from typing import Sequence


@dataclass(frozen=True)
class StationLayout:
    """Fixed coordinates of the station."""
    start: tuple[float, float]
    heading: float
    exit: tuple[float, float]
    slots: tuple[tuple[float, float], ...]
    layout_hash: str


def build_layout(
    start: tuple[float, float],
    exit_pos: tuple[float, float],
    slots: Sequence[tuple[float, float]],
    heading: float = 0.0,
) -> StationLayout:
    """Validate coordinates and return the layout with its hash."""
    if not slots:
        raise ValueError("station needs at least one slot")
    if len(set(slots)) != len(slots):
        raise ValueError("slot positions must be distinct")
    if tuple(start) in set(slots):
        raise ValueError("start position overlaps a slot")

    payload = {
        "start": [float(start[0]), float(start[1])],
        "heading": float(heading),
        "exit": [float(exit_pos[0]), float(exit_pos[1])],
        "slots": [[float(x), float(y)] for x, y in slots],
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return StationLayout(
        start=(float(start[0]), float(start[1])),
        heading=float(heading),
        exit=(float(exit_pos[0]), float(exit_pos[1])),
        slots=tuple((float(x), float(y)) for x, y in slots),
        layout_hash=hashlib.sha256(encoded).hexdigest(),
    )
