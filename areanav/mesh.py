"""Area, connection and door records forming the navigation graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Iterator, List, Optional, Tuple

from shapely.geometry import Point, box

from .geometry import Vec3, bilinear_z, midpoint
from .navfile import AreaRecord


class Direction(IntEnum):
    """Cardinal directions in ``.nav`` storage order. North is ``-y``."""

    NORTH = 0
    EAST = 1
    SOUTH = 2
    WEST = 3

    @property
    def opposite(self) -> "Direction":
        return Direction((self + 2) % 4)


@dataclass(slots=True)
class Door:
    """Walkable segment on the shared boundary of two areas."""

    left: Vec3
    middle: Vec3
    right: Vec3
    direction: Direction
    needs_jump: bool = False
    one_way_descent: bool = False

    def points(self) -> Tuple[Vec3, Vec3, Vec3]:
        return (self.left, self.middle, self.right)

    def to_json_dict(self) -> Dict[str, object]:
        return {
            "left": list(self.left),
            "middle": list(self.middle),
            "right": list(self.right),
            "direction": self.direction.name.lower(),
            "needs_jump": self.needs_jump,
            "one_way_descent": self.one_way_descent,
        }


@dataclass(slots=True)
class Connection:
    """Directed, costed link to ``target``."""

    target: int
    base_cost: float = 0.0
    """Cost assigned by the processor before runtime penalties."""

    penalty: float = 0.0
    """Accumulated runtime failure penalties."""

    multiplier: float = 1.0
    """Last accessibility multiplier applied to ``base_cost``."""

    door: Optional[Door] = None
    direction: Optional[Direction] = None
    needs_jump: bool = False
    one_way_descent: bool = False
    fine: bool = False
    """Added by fine point stitching rather than present in the mesh."""

    @property
    def cost(self) -> float:
        return self.base_cost + self.penalty

    def to_json_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "target": self.target,
            "cost": self.cost,
            "base_cost": self.base_cost,
            "penalty": self.penalty,
            "multiplier": self.multiplier,
            "needs_jump": self.needs_jump,
            "one_way_descent": self.one_way_descent,
        }
        if self.direction is not None:
            payload["direction"] = self.direction.name.lower()
        if self.door is not None:
            payload["door"] = self.door.to_json_dict()
        return payload


@dataclass(slots=True)
class Area:
    """Convex mesh cell with four directional connection lists."""

    id: int
    flags: int
    nw: Vec3
    ne: Vec3
    se: Vec3
    sw: Vec3
    center: Vec3
    connections: Tuple[List[Connection], List[Connection], List[Connection], List[Connection]] = field(
        default_factory=lambda: ([], [], [], [])
    )

    @classmethod
    def from_record(cls, record: AreaRecord) -> "Area":
        nw = record.north_west
        se = record.south_east
        ne = (se[0], nw[1], record.north_east_z)
        sw = (nw[0], se[1], record.south_west_z)
        area = cls(id=record.id, flags=record.flags, nw=nw, ne=ne, se=se, sw=sw, center=midpoint(nw, se))
        for direction, targets in zip(Direction, record.connections):
            for target in targets:
                area.connections[direction].append(Connection(target=target, direction=direction))
        return area

    @property
    def corners(self) -> Tuple[Vec3, Vec3, Vec3, Vec3]:
        return (self.nw, self.ne, self.se, self.sw)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Return ``(min_x, min_y, max_x, max_y)``."""

        xs = (self.nw[0], self.se[0])
        ys = (self.nw[1], self.se[1])
        return (min(xs), min(ys), max(xs), max(ys))

    @property
    def width(self) -> float:
        return abs(self.se[0] - self.nw[0])

    @property
    def depth(self) -> float:
        return abs(self.se[1] - self.nw[1])

    def footprint(self):
        """Return the horizontal footprint as a shapely polygon."""

        return box(*self.bounds)

    def contains_xy(self, x: float, y: float, tolerance: float = 0.0) -> bool:
        shape = self.footprint()
        if tolerance > 0:
            return shape.buffer(tolerance).covers(Point(x, y))
        return shape.covers(Point(x, y))

    def height_at(self, x: float, y: float) -> float:
        return bilinear_z(self.nw, self.ne, self.se, self.sw, x, y)

    def edge(self, direction: Direction) -> Tuple[Vec3, Vec3]:
        """Return the two corners bounding the edge that faces ``direction``."""

        if direction == Direction.EAST:
            return (self.ne, self.se)
        if direction == Direction.WEST:
            return (self.sw, self.nw)
        if direction == Direction.NORTH:
            return (self.nw, self.ne)
        return (self.se, self.sw)

    def iter_connections(self) -> Iterator[Connection]:
        for bucket in self.connections:
            yield from bucket

    def connection_to(self, target: int) -> Optional[Connection]:
        for conn in self.iter_connections():
            if conn.target == target:
                return conn
        return None

    def connection_count(self) -> int:
        return sum(len(bucket) for bucket in self.connections)


_FACING_EPS = 2.0


def facing_direction(a: Area, b: Area) -> Direction:
    """Return the side of ``a`` that faces ``b``.

    Bounding boxes that overlap on one axis (within a small tolerance) and
    are separated on the other decide directly; otherwise the dominant
    component of the center-to-center vector does.
    """

    a_min_x, a_min_y, a_max_x, a_max_y = a.bounds
    b_min_x, b_min_y, b_max_x, b_max_y = b.bounds
    overlap_y = a_min_y <= b_max_y + _FACING_EPS and b_min_y <= a_max_y + _FACING_EPS
    overlap_x = a_min_x <= b_max_x + _FACING_EPS and b_min_x <= a_max_x + _FACING_EPS

    if overlap_y and a_max_x <= b_min_x:
        return Direction.EAST
    if overlap_y and b_max_x <= a_min_x:
        return Direction.WEST
    if overlap_x and a_max_y <= b_min_y:
        return Direction.SOUTH
    if overlap_x and b_max_y <= a_min_y:
        return Direction.NORTH

    dx = b.center[0] - a.center[0]
    dy = b.center[1] - a.center[1]
    if abs(dx) >= abs(dy):
        return Direction.EAST if dx >= 0 else Direction.WEST
    return Direction.SOUTH if dy >= 0 else Direction.NORTH
