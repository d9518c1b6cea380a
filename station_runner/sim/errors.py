"""
File: station_runner/sim/errors.py
Purpose: Exception taxonomy for the station scheduler.
"""


class StationError(Exception):
    """Base class for station scheduler errors."""


class SpawnError(StationError):
    """Raised by a unit factory that cannot produce a unit."""


class PoolInitError(StationError):
    """Raised when the unit pool cannot be built to full capacity."""


class NoFreeSlotError(StationError):
    """Raised when a slot is requested while every slot is occupied."""


class SlotNotOccupiedError(StationError):
    """Raised when releasing a slot that is already free."""


class CancellationSignaled(StationError):
    """Raised at a suspension point once shutdown has been requested."""
