"""Fine point layer: a regular grid of walkable points inside each area.

Each area gets grid points spaced ``GRID`` units apart, kept away from its
borders. Areas too small for a grid collapse to a single point at their
center. Points on the outermost kept row or column are filed under that
side so neighboring areas can be stitched edge to edge.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from .geometry import Vec3, distance, distance_2d
from .graph import AreaGraph
from .mesh import Area, Connection, Direction
from .options import NavOptions

LOGGER = logging.getLogger(__name__)

GRID = 24.0
MIN_EDGE_BUFFER = 16.0
SIDE_EPS = 5.0
STITCH_MIN_DISTANCE = 5.0
STITCH_MAX_DISTANCE = 150.0
STITCH_PER_POINT = 2
STEEP_CLIMB_PENALTY = 100.0

ALL_SIDES = (Direction.NORTH, Direction.EAST, Direction.SOUTH, Direction.WEST)


@dataclass(slots=True)
class FinePoint:
    id: int
    area_id: int
    grid: Tuple[int, int]
    pos: Vec3
    ring: int = 0
    is_edge: bool = True
    sides: Tuple[Direction, ...] = ()
    links: Dict[int, float] = field(default_factory=dict)
    """Outgoing links: point id -> cost."""


@dataclass(slots=True)
class StitchCandidate:
    a: int
    b: int
    distance: float


class FineLayer:
    """All fine points of a graph plus their links."""

    def __init__(self, options: Optional[NavOptions] = None) -> None:
        self.options = options or NavOptions()
        self.points: List[FinePoint] = []
        self.by_area: Dict[int, List[int]] = {}
        self.edge_sets: Dict[int, Dict[Direction, List[int]]] = {}

    @classmethod
    def build(cls, graph: AreaGraph, options: Optional[NavOptions] = None) -> "FineLayer":
        layer = cls(options)
        for area in graph:
            layer._generate(area)
        LOGGER.info("fine layer built: areas=%d points=%d", len(layer.by_area), len(layer.points))
        return layer

    def __len__(self) -> int:
        return len(self.points)

    def point(self, point_id: int) -> Optional[FinePoint]:
        if 0 <= point_id < len(self.points):
            return self.points[point_id]
        return None

    def area_points(self, area_id: int) -> List[FinePoint]:
        return [self.points[i] for i in self.by_area.get(area_id, [])]

    def edge_points(self, area_id: int, side: Direction) -> List[FinePoint]:
        sets = self.edge_sets.get(area_id)
        if not sets:
            return []
        return [self.points[i] for i in sets.get(side, [])]

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    def _new_point(self, area_id: int, grid: Tuple[int, int], pos: Vec3) -> FinePoint:
        p = FinePoint(id=len(self.points), area_id=area_id, grid=grid, pos=pos)
        self.points.append(p)
        return p

    def _generate(self, area: Area) -> None:
        min_x, min_y, max_x, max_y = area.bounds
        width = max_x - min_x
        depth = max_y - min_y
        buffer = max(MIN_EDGE_BUFFER, self.options.step_height)
        usable_w = width - 2 * buffer
        usable_d = depth - 2 * buffer

        if width < GRID or depth < GRID or usable_w < GRID or usable_d < GRID:
            p = self._new_point(area.id, (0, 0), area.center)
            p.sides = ALL_SIDES
            self.by_area[area.id] = [p.id]
            self.edge_sets[area.id] = {side: [p.id] for side in ALL_SIDES}
            return

        gx = int(usable_w // GRID) + 1
        gy = int(usable_d // GRID) + 1
        cells = [(ix, iy) for ix in range(gx) for iy in range(gy)]
        if gx > 2 and gy > 2:
            cells = [(ix, iy) for ix, iy in cells if 0 < ix < gx - 1 and 0 < iy < gy - 1]

        points: Dict[Tuple[int, int], FinePoint] = {}
        for ix, iy in cells:
            x = min_x + buffer + ix * GRID
            y = min_y + buffer + iy * GRID
            points[(ix, iy)] = self._new_point(area.id, (ix, iy), (x, y, area.height_at(x, y)))

        lo_x = min(ix for ix, _ in points)
        hi_x = max(ix for ix, _ in points)
        lo_y = min(iy for _, iy in points)
        hi_y = max(iy for _, iy in points)
        sets: Dict[Direction, List[int]] = {side: [] for side in ALL_SIDES}
        for (ix, iy), p in points.items():
            p.ring = min(ix - lo_x, hi_x - ix, iy - lo_y, hi_y - iy)
            p.is_edge = p.ring <= 1
            sides = []
            if iy == lo_y:
                sides.append(Direction.NORTH)
            if ix == hi_x:
                sides.append(Direction.EAST)
            if iy == hi_y:
                sides.append(Direction.SOUTH)
            if ix == lo_x:
                sides.append(Direction.WEST)
            p.sides = tuple(sides)
            for side in sides:
                sets[side].append(p.id)

        for (ix, iy), p in points.items():
            for dx, dy in ((0, 1), (0, -1), (1, 0), (-1, 0)):
                other = points.get((ix + dx, iy + dy))
                if other is not None:
                    self.link(p, other)
            if not p.links:
                for dx, dy in ((1, 1), (-1, 1), (1, -1), (-1, -1)):
                    other = points.get((ix + dx, iy + dy))
                    if other is not None:
                        self.link(p, other)

        self.by_area[area.id] = [p.id for p in points.values()]
        self.edge_sets[area.id] = sets

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------
    def link_cost(self, a: FinePoint, b: FinePoint) -> Optional[float]:
        """Return the cost of moving from ``a`` to ``b``, or ``None`` if too steep."""

        rise = b.pos[2] - a.pos[2]
        if rise > self.options.max_jump:
            return None
        cost = distance(a.pos, b.pos)
        if self.options.walkable_mode == "smooth" and abs(rise) > self.options.step_height:
            cost += math.floor(abs(rise) / self.options.step_height) * 10.0
        if rise > self.options.step_height:
            cost += STEEP_CLIMB_PENALTY
        return cost

    def link(self, a: FinePoint, b: FinePoint) -> int:
        """Link ``a`` and ``b`` in every direction the climb allows; returns links added."""

        added = 0
        for src, dst in ((a, b), (b, a)):
            if dst.id in src.links:
                continue
            cost = self.link_cost(src, dst)
            if cost is None:
                continue
            src.links[dst.id] = cost
            added += 1
        return added

    # ------------------------------------------------------------------
    # Stitching across areas
    # ------------------------------------------------------------------
    def adjacent_sides(self, graph: AreaGraph) -> Iterator[Tuple[Area, Area, Direction]]:
        """Yield ``(a, b, side_of_a)`` for every pair of touching areas with ``a.id < b.id``."""

        for a in graph:
            for b_id in graph.index.intersects(a.bounds, pad=SIDE_EPS):
                if b_id <= a.id:
                    continue
                b = graph.get(b_id)
                if b is None:
                    continue
                side = neighbour_side(a, b, SIDE_EPS)
                if side is not None:
                    yield a, b, side

    def stitch_candidates(self, graph: AreaGraph) -> List[StitchCandidate]:
        """Return the closest cross-area edge point pairs worth probing."""

        out: List[StitchCandidate] = []
        for a, b, side in self.adjacent_sides(graph):
            edge_b = self.edge_points(b.id, side.opposite)
            for pa in self.edge_points(a.id, side):
                near = []
                for pb in edge_b:
                    d = distance_2d(pa.pos, pb.pos)
                    if STITCH_MIN_DISTANCE < d < STITCH_MAX_DISTANCE and pb.id not in pa.links:
                        near.append((d, pb.id))
                near.sort()
                for d, pb_id in near[:STITCH_PER_POINT]:
                    out.append(StitchCandidate(pa.id, pb_id, d))
        return out

    def stitch(self, graph: AreaGraph, candidate: StitchCandidate) -> int:
        """Link a probed candidate and mirror it onto the area graph.

        Returns the number of area-level connections added.
        """

        pa = self.points[candidate.a]
        pb = self.points[candidate.b]
        self.link(pa, pb)
        added = 0
        for src, dst in ((pa, pb), (pb, pa)):
            if dst.id not in src.links or graph.has_connection(src.area_id, dst.area_id):
                continue
            if graph.add_connection(src.area_id, Connection(target=dst.area_id, base_cost=candidate.distance, fine=True)):
                added += 1
        return added


def neighbour_side(a: Area, b: Area, eps: float = SIDE_EPS) -> Optional[Direction]:
    """Return the side of ``a`` that touches ``b``, or ``None`` if they do not touch."""

    a_min_x, a_min_y, a_max_x, a_max_y = a.bounds
    b_min_x, b_min_y, b_max_x, b_max_y = b.bounds
    overlap_y = a_min_y <= b_max_y + eps and b_min_y <= a_max_y + eps
    overlap_x = a_min_x <= b_max_x + eps and b_min_x <= a_max_x + eps
    if overlap_y and abs(a_max_x - b_min_x) < eps:
        return Direction.EAST
    if overlap_y and abs(b_max_x - a_min_x) < eps:
        return Direction.WEST
    if overlap_x and abs(a_max_y - b_min_y) < eps:
        return Direction.SOUTH
    if overlap_x and abs(b_max_y - a_min_y) < eps:
        return Direction.NORTH
    return None
