import asyncio

import pytest

from station_runner.sim.bodies import KinematicUnitFactory
from station_runner.sim.errors import PoolInitError
from station_runner.sim.registry import UnitRegistry


def _factory(**kwargs):
    return KinematicUnitFactory(tick_hz=10, speed_min=1.0, speed_max=2.0, seed=1, **kwargs)


def test_initialize_spawns_full_inactive_idle_pool():
    registry = UnitRegistry()
    factory = _factory()
    units = asyncio.run(registry.initialize(5, factory, start=(3.0, -4.0), heading=90.0))

    assert len(units) == 5
    assert len(registry) == 5
    assert [u.id for u in units] == [0, 1, 2, 3, 4]
    for unit, body in zip(units, factory.spawned):
        assert unit.state == "idle"
        assert (unit.x, unit.y) == (3.0, -4.0)
        assert unit.handle is body
        assert body.active is False
        assert body.heading == 90.0


def test_spawn_failure_raises_pool_init_error_without_partial_pool():
    registry = UnitRegistry()
    with pytest.raises(PoolInitError):
        asyncio.run(registry.initialize(4, _factory(fail_after=2), start=(0.0, 0.0)))
    assert len(registry) == 0
    assert registry.find_idle() is None


def test_initialize_twice_is_rejected():
    registry = UnitRegistry()
    asyncio.run(registry.initialize(2, _factory(), start=(0.0, 0.0)))
    with pytest.raises(PoolInitError):
        asyncio.run(registry.initialize(2, _factory(), start=(0.0, 0.0)))


def test_find_idle_scans_in_registry_order():
    registry = UnitRegistry()
    units = asyncio.run(registry.initialize(4, _factory(), start=(0.0, 0.0)))

    assert registry.find_idle() is units[0]
    units[0].state = "in_service"
    units[1].state = "moving_to_exit"
    assert registry.find_idle() is units[2]

    # a re-idled unit is preferred again because of its lower index
    units[1].state = "idle"
    assert registry.find_idle() is units[1]


def test_find_idle_returns_none_when_pool_busy():
    registry = UnitRegistry()
    units = asyncio.run(registry.initialize(3, _factory(), start=(0.0, 0.0)))
    for unit in units:
        unit.state = "moving_to_slot"

    assert registry.find_idle() is None
    assert registry.idle_count() == 0


def test_unexpected_factory_error_is_wrapped():
    class BrokenFactory:
        async def spawn(self, x, y, heading):
            raise RuntimeError("prefab missing")

    registry = UnitRegistry()
    with pytest.raises(PoolInitError) as excinfo:
        asyncio.run(registry.initialize(2, BrokenFactory(), start=(0.0, 0.0)))
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert len(registry) == 0
