from areanav.finepoints import FineLayer, neighbour_side
from areanav.graph import AreaGraph
from areanav.mesh import Direction
from areanav.options import NavOptions

from conftest import make_area


def test_small_area_gets_single_center_point():
    graph = AreaGraph([make_area(1, 0, 0, 40, 40, 5.0)])
    layer = FineLayer.build(graph)

    points = layer.area_points(1)
    assert len(points) == 1
    assert points[0].pos == (20.0, 20.0, 5.0)
    for side in Direction:
        assert [p.id for p in layer.edge_points(1, side)] == [points[0].id]


def test_grid_is_peeled_and_sides_assigned():
    graph = AreaGraph([make_area(1, 0, 0, 200, 200, 0.0)])
    layer = FineLayer.build(graph)

    points = layer.area_points(1)
    # 7x7 grid with the outer ring removed.
    assert len(points) == 25
    xs = sorted({p.pos[0] for p in points})
    assert xs == [42.0, 66.0, 90.0, 114.0, 138.0]
    assert len(layer.edge_points(1, Direction.EAST)) == 5
    assert all(p.pos[0] == 138.0 for p in layer.edge_points(1, Direction.EAST))
    assert all(p.pos[1] == 42.0 for p in layer.edge_points(1, Direction.NORTH))

    center = next(p for p in points if p.pos[:2] == (90.0, 90.0))
    assert center.ring == 2
    assert not center.is_edge
    assert len(center.links) == 4


def test_link_cost_limits_climb():
    graph = AreaGraph([make_area(1, 0, 0, 40, 40, 0.0), make_area(2, 40, 0, 80, 40, 100.0)])
    layer = FineLayer.build(graph)
    low = layer.area_points(1)[0]
    high = layer.area_points(2)[0]

    assert layer.link_cost(low, high) is None
    # Smooth descent: distance plus a height penalty.
    assert layer.link_cost(high, low) > 40.0
    assert layer.link(low, high) == 1
    assert low.id in high.links and high.id not in low.links


def test_steep_climb_penalty():
    graph = AreaGraph([make_area(1, 0, 0, 40, 40, 0.0), make_area(2, 40, 0, 80, 40, 30.0)])
    layer = FineLayer.build(graph, NavOptions(walkable_mode="aggressive"))
    low, high = layer.points
    assert layer.link_cost(low, high) > layer.link_cost(high, low) + 99.0


def test_stitch_candidates_pair_facing_edges():
    graph = AreaGraph([make_area(1, 0, 0, 200, 200), make_area(2, 200, 0, 400, 200)])
    layer = FineLayer.build(graph)
    candidates = layer.stitch_candidates(graph)

    assert len(candidates) == 10
    for cand in candidates:
        assert layer.point(cand.a).area_id == 1
        assert layer.point(cand.b).area_id == 2
        assert 5.0 < cand.distance < 150.0

    added = layer.stitch(graph, candidates[0])
    assert added == 2
    assert graph.connection(1, 2).fine
    assert layer.stitch(graph, candidates[1]) == 0


def test_neighbour_side():
    a = make_area(1, 0, 0, 100, 100)
    assert neighbour_side(a, make_area(2, 100, 0, 200, 100)) == Direction.EAST
    assert neighbour_side(a, make_area(3, 0, 100, 100, 200)) == Direction.SOUTH
    assert neighbour_side(a, make_area(4, 300, 0, 400, 100)) is None
