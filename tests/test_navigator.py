import pytest

from areanav.api import Navigator
from areanav.navfile import EmptyMeshError, FormatError, MissingFileError
from areanav.options import NavOptions

from conftest import build_nav, pack_area


@pytest.fixture
def nav(scenario_nav):
    n = Navigator()
    n.load_bytes(scenario_nav)
    n.process_all()
    return n


def test_queries_before_load():
    n = Navigator()
    assert n.find_path(1, 2).reason == "not-loaded"
    assert n.find_path_between((0, 0, 0), (1, 1, 1)).reason == "not-loaded"
    assert n.closest_area((0.0, 0.0, 0.0)) is None
    assert not n.loaded


def test_find_path_scenario(nav):
    result = nav.find_path(1, 3)
    assert result.path == [1, 2, 3]
    assert result.cost == pytest.approx(270.0)
    assert result.reason is None


def test_find_path_logs_metrics(nav, caplog):
    with caplog.at_level("INFO", logger="areanav.api"):
        nav.find_path(1, 3)
    assert any("find_path metrics:" in rec.getMessage() for rec in caplog.records)


@pytest.mark.parametrize(
    "start, goal, reason",
    [
        ("1", 3, "invalid-input"),
        (True, 3, "invalid-input"),
        (1, None, "invalid-input"),
        (1, 99, "area-not-found"),
    ],
)
def test_find_path_bad_input(nav, start, goal, reason):
    result = nav.find_path(start, goal)
    assert result.path is None
    assert result.reason == reason


def test_closest_area(nav):
    assert nav.closest_area((150.0, 50.0, 0.0)) == 2
    assert nav.closest_area((900.0, 50.0, 40.0)) == 3
    assert nav.closest_area((1.0, 2.0)) is None


def test_format_error_keeps_previous_graph(nav):
    before = nav.graph
    with pytest.raises(FormatError):
        nav.load_bytes(b"\x00" * 32)
    assert nav.graph is before
    assert nav.find_path(1, 3).found


def test_empty_mesh_installs_empty_graph():
    n = Navigator()
    with pytest.raises(EmptyMeshError):
        n.load_bytes(build_nav([]))
    assert n.graph is not None
    assert len(n.graph) == 0
    assert n.find_path(1, 2).reason == "not-loaded"


def test_empty_mesh_after_load_keeps_graph(nav):
    before = nav.graph
    with pytest.raises(EmptyMeshError):
        nav.load_bytes(build_nav([]))
    assert nav.graph is before


def test_missing_file_generates_once(tmp_path, scenario_nav):
    path = tmp_path / "map.nav"
    calls = []

    def generate(p):
        calls.append(p)
        p.write_bytes(scenario_nav)

    n = Navigator(generate=generate)
    graph = n.load_file(path)
    assert calls == [path]
    assert len(graph) == 3
    assert n.nav_path == path


def test_missing_file_without_generator(tmp_path):
    with pytest.raises(MissingFileError):
        Navigator().load_file(tmp_path / "absent.nav")
    with pytest.raises(MissingFileError):
        Navigator(generate=lambda p: None).load_file(tmp_path / "absent.nav")


def test_blocked_edge_is_avoided_then_released(nav):
    assert nav.report_failure(2, 3) is False
    assert nav.report_failure(2, 3) is True
    assert nav.is_blocked(2, 3)

    assert nav.find_path(1, 3, respect_blocks=True).reason == "unreachable"
    ignored = nav.find_path(1, 3)
    assert ignored.path == [1, 2, 3]
    assert ignored.cost == pytest.approx(100.0 + 170.0 + 700.0)

    for _ in range(301):
        nav.tick()
    assert not nav.is_blocked(2, 3)
    assert nav.find_path(1, 3, respect_blocks=True).path == [1, 2, 3]


def test_report_failure_unknown_edge(nav):
    assert nav.report_failure(1, 99) is False
    assert len(nav.breaker) == 0


def test_plan_sets_waypoints(nav):
    result = nav.plan((50.0, 50.0, 0.0), (260.0, 40.0, 40.0))
    assert result.path == [1, 2, 3]
    assert nav.current_path == [1, 2, 3]
    assert nav.current_waypoint().kind == "door"
    assert nav.advance_waypoint().kind == "center"
    assert nav.current_path == [2, 3]
    assert nav.skip_waypoints(5) is None
    nav.clear_path()
    assert nav.current_path == []


def test_request_path_is_throttled(nav):
    first = nav.request_path((50.0, 50.0, 0.0), (250.0, 50.0, 40.0))
    assert first.path == [1, 2, 3]
    again = nav.request_path((50.0, 50.0, 0.0), (150.0, 50.0, 0.0))
    assert again is first

    for _ in range(33):
        nav.tick()
    latest = nav.scheduler.result("pathfinding")
    assert latest is not first
    assert latest.path == [1, 2]


def test_add_failure_penalty_and_recalculate(nav):
    assert nav.add_failure_penalty(2, 3) is True
    assert nav.graph.connection(3, 2).penalty == pytest.approx(100.0)
    assert nav.add_failure_penalty(2, 99) is False
    assert nav.recalculate_costs() == 4
    assert nav.graph.connection(3, 2).penalty == 0.0


def test_tick_drives_processor(scenario_nav):
    n = Navigator(NavOptions(initial_batch_size=1))
    n.load_bytes(scenario_nav)
    assert n.processor.is_processing
    for _ in range(20):
        n.tick(frame_time=1 / 30)
    assert not n.processor.is_processing
    assert n.tick_count == 20


def test_large_area_ids_load_and_route():
    big = 0xFFFFFF00
    data = build_nav([
        pack_area(big, (0, 0, 0), (100, 100, 0), connections=((), (big + 1,), (), ())),
        pack_area(big + 1, (100, 0, 0), (200, 100, 0), connections=((), (), (), (big,))),
    ])
    n = Navigator()
    graph = n.load_bytes(data)
    n.process_all()

    assert len(graph) == 2
    assert n.closest_area((150.0, 50.0, 0.0)) == big + 1
    result = n.find_path(big, big + 1)
    assert result.path == [big, big + 1]
    assert result.cost == pytest.approx(100.0)
