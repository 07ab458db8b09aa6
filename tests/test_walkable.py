from areanav.options import NavOptions
from areanav.walkable import is_walkable

from conftest import HeightWorld

FLOOR = (-50.0, -50.0, 300.0, 50.0, 0.0)


def test_flat_floor_is_walkable():
    world = HeightWorld([FLOOR])
    assert is_walkable(world, (0.0, 0.0, 0.0), (200.0, 0.0, 0.0)) is True


def test_wall_blocks():
    world = HeightWorld([FLOOR, (90.0, -50.0, 110.0, 50.0, 1000.0)])
    assert is_walkable(world, (0.0, 0.0, 0.0), (200.0, 0.0, 0.0)) is False


def test_gap_in_floor_blocks():
    world = HeightWorld([(-50.0, -50.0, 80.0, 50.0, 0.0), (120.0, -50.0, 300.0, 50.0, 0.0)])
    assert is_walkable(world, (0.0, 0.0, 0.0), (200.0, 0.0, 0.0)) is False


def test_ledge_needs_jump():
    world = HeightWorld([(-50.0, -50.0, 100.0, 50.0, 0.0), (100.0, -50.0, 300.0, 50.0, 40.0)])
    start, end = (0.0, 0.0, 0.0), (200.0, 0.0, 40.0)
    assert is_walkable(world, start, end) is False
    assert is_walkable(world, start, end, NavOptions(), jump=True) is True


def test_goal_far_above_is_rejected_without_tracing():
    world = HeightWorld([FLOOR])
    assert is_walkable(world, (0.0, 0.0, 0.0), (50.0, 0.0, 100.0), jump=True) is False
    assert world.calls == 0


def test_no_trace_data(null_tracer):
    assert is_walkable(null_tracer, (0.0, 0.0, 0.0), (200.0, 0.0, 0.0)) is None
    assert is_walkable(None, (0.0, 0.0, 0.0), (200.0, 0.0, 0.0)) is None
