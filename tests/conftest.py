import math
import struct
from typing import Iterable, Optional, Sequence, Tuple

import pytest

from areanav.graph import AreaGraph
from areanav.mesh import Area, Connection, Direction
from areanav.navfile import NAV_MAGIC, NAV_MAJOR_VERSION, clear_cache
from areanav.trace import TraceResult


# ----------------------------------------------------------------------
# .nav byte builder
# ----------------------------------------------------------------------
def pack_area(
    area_id: int,
    nw: Tuple[float, float, float],
    se: Tuple[float, float, float],
    ne_z: Optional[float] = None,
    sw_z: Optional[float] = None,
    connections: Sequence[Sequence[int]] = ((), (), (), ()),
    hiding_spots: Sequence[Tuple[int, float, float, float, int]] = (),
    encounter_paths: Sequence[Tuple[int, int, int, int, Sequence[Tuple[int, int]]]] = (),
    place_id: int = 0,
    ladders: Sequence[Sequence[int]] = ((), ()),
    visible: Sequence[Tuple[int, int]] = (),
    flags: int = 0,
) -> bytes:
    out = struct.pack("<II", area_id, flags)
    out += struct.pack("<fff", *nw)
    out += struct.pack("<fff", *se)
    out += struct.pack("<ff", nw[2] if ne_z is None else ne_z, se[2] if sw_z is None else sw_z)
    for ids in connections:
        out += struct.pack("<I", len(ids)) + struct.pack(f"<{len(ids)}I", *ids)
    out += struct.pack("<B", len(hiding_spots))
    for spot in hiding_spots:
        out += struct.pack("<IfffB", *spot)
    out += struct.pack("<I", len(encounter_paths))
    for from_id, from_dir, to_id, to_dir, spots in encounter_paths:
        out += struct.pack("<IBIBB", from_id, from_dir, to_id, to_dir, len(spots))
        for order_id, dist in spots:
            out += struct.pack("<IB", order_id, dist)
    out += struct.pack("<H", place_id)
    for ids in ladders:
        out += struct.pack("<I", len(ids)) + struct.pack(f"<{len(ids)}I", *ids)
    out += struct.pack("<ff", 1.5, 2.5)
    out += struct.pack("<ffff", 0.1, 0.2, 0.3, 0.4)
    out += struct.pack("<I", len(visible))
    for vis_id, attrs in visible:
        out += struct.pack("<IB", vis_id, attrs)
    out += struct.pack("<I", 0)
    out += struct.pack("<I", 0xDEADBEEF)
    return out


def pack_ladder(ladder_id: int, top, bottom, top_areas=(0, 0, 0, 0), bottom_area: int = 0) -> bytes:
    out = struct.pack("<If", ladder_id, 32.0)
    out += struct.pack("<fff", *top)
    out += struct.pack("<fff", *bottom)
    out += struct.pack("<fI", abs(top[2] - bottom[2]), 1)
    out += struct.pack("<IIII", *top_areas)
    out += struct.pack("<I", bottom_area)
    return out


def build_nav(
    areas: Iterable[bytes],
    places: Sequence[str] = (),
    ladders: Optional[Sequence[bytes]] = None,
    magic: int = NAV_MAGIC,
    version: int = NAV_MAJOR_VERSION,
) -> bytes:
    area_list = list(areas)
    out = struct.pack("<IIIIBH", magic, version, 1, 123456, 1, len(places))
    for name in places:
        raw = name.encode("latin-1") + b"\x00"
        out += struct.pack("<H", len(raw)) + raw
    out += struct.pack("<B", 0)
    out += struct.pack("<I", len(area_list))
    out += b"".join(area_list)
    if ladders is not None:
        out += struct.pack("<I", len(ladders)) + b"".join(ladders)
    return out


# ----------------------------------------------------------------------
# In-memory areas
# ----------------------------------------------------------------------
def make_area(
    area_id: int,
    x0: float,
    y0: float,
    x1: float,
    y1: float,
    z: float = 0.0,
    ne_z: Optional[float] = None,
    sw_z: Optional[float] = None,
    se_z: Optional[float] = None,
) -> Area:
    nw = (x0, y0, z)
    se = (x1, y1, z if se_z is None else se_z)
    ne = (x1, y0, z if ne_z is None else ne_z)
    sw = (x0, y1, z if sw_z is None else sw_z)
    center = ((x0 + x1) / 2, (y0 + y1) / 2, (nw[2] + se[2]) / 2)
    return Area(id=area_id, flags=0, nw=nw, ne=ne, se=se, sw=sw, center=center)


def connect(graph: AreaGraph, a: int, b: int, cost: float = 0.0, direction: Optional[Direction] = None) -> None:
    graph.add_connection(a, Connection(target=b, base_cost=cost, direction=direction))


# ----------------------------------------------------------------------
# Fake geometry providers
# ----------------------------------------------------------------------
class HeightWorld:
    """Axis-aligned boxes of solid floor; a ray hits when it dips below a floor."""

    SAMPLES = 32

    def __init__(self, floors: Sequence[Tuple[float, float, float, float, float]]) -> None:
        self.floors = list(floors)
        self.calls = 0

    def height(self, x: float, y: float) -> Optional[float]:
        best = None
        for x0, y0, x1, y1, z in self.floors:
            if x0 <= x <= x1 and y0 <= y <= y1:
                best = z if best is None else max(best, z)
        return best

    def trace_hull(self, start, end):
        self.calls += 1
        if start[0] == end[0] and start[1] == end[1]:
            h = self.height(start[0], start[1])
            if h is None or h < end[2]:
                return TraceResult(start, end, 1.0)
            if h >= start[2]:
                return TraceResult(start, end, 0.0)
            return TraceResult(start, end, (start[2] - h) / (start[2] - end[2]), (0.0, 0.0, 1.0))
        dx, dy = end[0] - start[0], end[1] - start[1]
        norm = math.hypot(dx, dy)
        for i in range(1, self.SAMPLES + 1):
            t = i / self.SAMPLES
            x, y = start[0] + dx * t, start[1] + dy * t
            z = start[2] + (end[2] - start[2]) * t
            h = self.height(x, y)
            if h is not None and h > z:
                return TraceResult(start, end, (i - 1) / self.SAMPLES, (-dx / norm, -dy / norm, 0.0))
        return TraceResult(start, end, 1.0)


class FixedTracer:
    """Returns the same fraction for every sweep (``None`` for no data)."""

    def __init__(self, fraction: Optional[float]) -> None:
        self.fraction = fraction
        self.calls = 0

    def trace_hull(self, start, end):
        self.calls += 1
        if self.fraction is None:
            return None
        return TraceResult(start, end, self.fraction)


class ManualClock:
    def __init__(self, now: int = 0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ticks: int) -> None:
        self.now += ticks


# ----------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _fresh_nav_cache():
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def open_tracer() -> FixedTracer:
    return FixedTracer(1.0)


@pytest.fixture
def wall_tracer() -> FixedTracer:
    return FixedTracer(0.0)


@pytest.fixture
def null_tracer() -> FixedTracer:
    return FixedTracer(None)


@pytest.fixture
def scenario_graph() -> AreaGraph:
    """Areas 1 -> 2 flat, 2 -> 3 rising by 40 units, connected both ways."""

    graph = AreaGraph([
        make_area(1, 0, 0, 100, 100, 0.0),
        make_area(2, 100, 0, 200, 100, 0.0),
        make_area(3, 200, 0, 300, 100, 40.0),
    ])
    for a, b in ((1, 2), (2, 1), (2, 3), (3, 2)):
        connect(graph, a, b, cost=100.0)
    return graph


@pytest.fixture
def scenario_nav() -> bytes:
    """The scenario graph as ``.nav`` bytes (east/west links)."""

    return build_nav(
        [
            pack_area(1, (0, 0, 0), (100, 100, 0), connections=((), (2,), (), ())),
            pack_area(2, (100, 0, 0), (200, 100, 0), connections=((), (3,), (), (1,))),
            pack_area(3, (200, 0, 40), (300, 100, 40), connections=((), (), (), (2,))),
        ],
        places=["spawn"],
    )


def grid_graph(cols: int, rows: int, size: float = 100.0) -> AreaGraph:
    """Flat ``cols x rows`` grid of areas with 4-neighbour links; ids start at 1."""

    graph = AreaGraph()
    for r in range(rows):
        for c in range(cols):
            graph.add_area(make_area(1 + r * cols + c, c * size, r * size, (c + 1) * size, (r + 1) * size))
    for r in range(rows):
        for c in range(cols):
            a = 1 + r * cols + c
            if c + 1 < cols:
                connect(graph, a, a + 1, size)
                connect(graph, a + 1, a, size)
            if r + 1 < rows:
                connect(graph, a, a + cols, size)
                connect(graph, a + cols, a, size)
    return graph
