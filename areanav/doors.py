"""Door synthesis between adjacent areas.

A door is the part of the shared boundary of two areas where the height
difference between their facing edges stays below the jump height. Edges
are compared in the coordinate of their shared axis (``x`` for north/south
edges, ``y`` for east/west), so both areas are sampled at the same world
position regardless of how their corners are ordered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from .geometry import Vec3, lerp
from .graph import AreaGraph
from .mesh import Area, Direction, Door, facing_direction
from .options import NavOptions

LOGGER = logging.getLogger(__name__)

SEARCH_ITERATIONS = 4
DESCENT_EPS = 0.5


@dataclass(slots=True)
class _Overlap:
    axis: int
    a_edge: Tuple[Vec3, Vec3]
    b_edge: Tuple[Vec3, Vec3]
    lo: float
    hi: float
    a_range: Tuple[float, float]
    b_range: Tuple[float, float]

    def point_a(self, s: float) -> Vec3:
        return _edge_point(self.a_edge, self.axis, s)

    def point_b(self, s: float) -> Vec3:
        return _edge_point(self.b_edge, self.axis, s)

    def delta(self, s: float) -> float:
        return abs(self.point_b(s)[2] - self.point_a(s)[2])


def _edge_point(edge: Tuple[Vec3, Vec3], axis: int, s: float) -> Vec3:
    p0, p1 = edge
    span = p1[axis] - p0[axis]
    t = 0.0 if span == 0 else (s - p0[axis]) / span
    return lerp(p0, p1, min(1.0, max(0.0, t)))


def edge_overlap(a: Area, b: Area, direction: Optional[Direction] = None) -> Optional[_Overlap]:
    """Return the overlap of ``a``'s edge facing ``b`` with ``b``'s opposite edge."""

    if direction is None:
        direction = facing_direction(a, b)
    a_edge = a.edge(direction)
    b_edge = b.edge(direction.opposite)
    axis = 0 if direction in (Direction.NORTH, Direction.SOUTH) else 1

    a_range = (min(a_edge[0][axis], a_edge[1][axis]), max(a_edge[0][axis], a_edge[1][axis]))
    b_range = (min(b_edge[0][axis], b_edge[1][axis]), max(b_edge[0][axis], b_edge[1][axis]))
    lo = max(a_range[0], b_range[0])
    hi = min(a_range[1], b_range[1])
    if hi <= lo:
        return None
    return _Overlap(axis, a_edge, b_edge, lo, hi, a_range, b_range)


def _clamp_clearance(ov: _Overlap, clearance: float) -> Tuple[float, float]:
    lo, hi = ov.lo, ov.hi
    for rmin, rmax in (ov.a_range, ov.b_range):
        if rmax - rmin > 2 * clearance:
            lo = max(lo, rmin + clearance)
            hi = min(hi, rmax - clearance)
    if hi <= lo:
        return ov.lo, ov.hi
    return lo, hi


def _search_cutoff(ov: _Overlap, reach: float, unreach: float, options: NavOptions) -> float:
    """Return the axis value where the door must end, backed off toward ``reach``."""

    low, high = 0.0, 1.0
    for _ in range(SEARCH_ITERATIONS):
        mid = (low + high) * 0.5
        if ov.delta(reach + (unreach - reach) * mid) >= options.max_jump:
            high = mid
        else:
            low = mid
    span = abs(unreach - reach)
    back = options.clearance_offset / span if span > 0 else 0.0
    t = max(0.0, low - back)
    return reach + (unreach - reach) * t


def _average_z(area: Area) -> float:
    return sum(c[2] for c in area.corners) / 4.0


def build_door(a: Area, b: Area, options: Optional[NavOptions] = None) -> Optional[Door]:
    """Return the door from ``a`` into ``b``, or ``None`` when none can be built."""

    opts = options or NavOptions()
    direction = facing_direction(a, b)
    ov = edge_overlap(a, b, direction)
    if ov is None:
        return None

    lo_reach = ov.delta(ov.lo) < opts.max_jump
    hi_reach = ov.delta(ov.hi) < opts.max_jump
    one_way = False

    if lo_reach and hi_reach:
        lo, hi = _clamp_clearance(ov, opts.hitbox_width)
    elif lo_reach:
        lo, hi = ov.lo, _search_cutoff(ov, ov.lo, ov.hi, opts)
    elif hi_reach:
        lo, hi = _search_cutoff(ov, ov.hi, ov.lo, opts), ov.hi
    else:
        descending = (
            ov.point_b(ov.lo)[2] < ov.point_a(ov.lo)[2]
            and ov.point_b(ov.hi)[2] < ov.point_a(ov.hi)[2]
            and _average_z(b) < _average_z(a) - DESCENT_EPS
        )
        if not descending:
            return None
        lo, hi = ov.lo, ov.hi
        one_way = True

    left = ov.point_a(lo)
    right = ov.point_a(hi)
    d_left = ov.delta(lo)
    d_right = ov.delta(hi)
    needs_jump = any(opts.step_height < d < opts.max_jump for d in (d_left, d_right))
    return Door(
        left=left,
        middle=lerp(left, right, 0.5),
        right=right,
        direction=direction,
        needs_jump=needs_jump,
        one_way_descent=one_way,
    )


def edge_midpoint_door(a: Area, b: Area) -> Door:
    """Return a point door at the middle of ``a``'s edge facing ``b``."""

    direction = facing_direction(a, b)
    p0, p1 = a.edge(direction)
    mid = lerp(p0, p1, 0.5)
    return Door(left=mid, middle=mid, right=mid, direction=direction)


def synthesize_doors(graph: AreaGraph, options: Optional[NavOptions] = None) -> int:
    """Attach doors to every connection in ``graph``.

    Connections naming unknown areas are always removed. Connections for
    which no door exists are removed when ``cleanup_connections`` is set.
    Returns the number of removed connections.
    """

    opts = options or NavOptions()
    removed = 0
    built = 0
    for area in graph:
        for bucket in area.connections:
            kept = []
            for conn in bucket:
                target = graph.get(conn.target)
                if target is None:
                    LOGGER.debug("Dropping connection %d -> %d: unknown target", area.id, conn.target)
                    removed += 1
                    continue
                door = build_door(area, target, opts)
                if door is None:
                    if opts.cleanup_connections:
                        LOGGER.debug("Dropping connection %d -> %d: no door span", area.id, conn.target)
                        removed += 1
                        continue
                    kept.append(conn)
                    continue
                conn.door = door
                conn.direction = door.direction
                conn.needs_jump = door.needs_jump
                conn.one_way_descent = door.one_way_descent
                kept.append(conn)
                built += 1
            bucket[:] = kept
    LOGGER.info("doors synthesized: built=%d removed=%d areas=%d", built, removed, len(graph))
    return removed
