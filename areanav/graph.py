"""Area graph store for areanav.

Areas live in a dense list in insertion order with an id to slot map, so
callers can hold ids across frames and resolve them on demand however
sparse the on-disk ids are. The store also owns the R-tree used for
position lookups.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .geometry import Vec3, distance
from .mesh import Area, Connection, facing_direction
from .navfile import NavMesh
from .spatial import AreaIndex

LOGGER = logging.getLogger(__name__)

_NEAREST_CANDIDATES = 8


class AreaNotFoundError(LookupError):
    """Raised when an operation requires an area id that is not in the graph."""

    def __init__(self, area_id: int) -> None:
        super().__init__(f"Area not found in graph: {area_id}")
        self.area_id = area_id


class AreaGraph:
    """Single owned navigation graph."""

    def __init__(self, areas: Iterable[Area] = ()) -> None:
        self._areas: List[Area] = []
        self._slots: Dict[int, int] = {}
        self._index = AreaIndex()
        for area in areas:
            self.add_area(area)

    @classmethod
    def from_navmesh(cls, mesh: NavMesh) -> "AreaGraph":
        return cls(Area.from_record(record) for record in mesh.areas.values())

    # ------------------------------------------------------------------
    # Area storage
    # ------------------------------------------------------------------
    def add_area(self, area: Area) -> None:
        if area.id < 0:
            raise ValueError(f"Area ids must be non-negative; got {area.id}")
        slot = self._slots.get(area.id)
        if slot is None:
            self._slots[area.id] = len(self._areas)
            self._areas.append(area)
        else:
            self._areas[slot] = area
        self._index.insert(area.id, area.bounds)

    def get(self, area_id: int) -> Optional[Area]:
        if isinstance(area_id, bool) or not isinstance(area_id, int):
            return None
        slot = self._slots.get(area_id)
        return None if slot is None else self._areas[slot]

    def require(self, area_id: int) -> Area:
        area = self.get(area_id)
        if area is None:
            raise AreaNotFoundError(area_id)
        return area

    def __contains__(self, area_id: object) -> bool:
        return self.get(area_id) is not None  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._areas)

    def __iter__(self) -> Iterator[Area]:
        return iter(self._areas)

    @property
    def index(self) -> AreaIndex:
        return self._index

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------
    def neighbors(self, area_id: int) -> Iterator[Tuple[int, float]]:
        """Yield ``(target_id, cost)`` for every outgoing connection of ``area_id``."""

        area = self.get(area_id)
        if area is None:
            return
        for conn in area.iter_connections():
            if conn.target in self:
                yield conn.target, conn.cost

    def connection(self, from_id: int, to_id: int) -> Optional[Connection]:
        area = self.get(from_id)
        if area is None:
            return None
        return area.connection_to(to_id)

    def has_connection(self, from_id: int, to_id: int) -> bool:
        return self.connection(from_id, to_id) is not None

    def add_connection(self, from_id: int, conn: Connection) -> bool:
        """Append ``conn`` to ``from_id``; returns ``False`` for unknown ids or duplicates."""

        area = self.get(from_id)
        target = self.get(conn.target)
        if area is None or target is None:
            LOGGER.debug("add_connection ignored: %s -> %s (unknown area)", from_id, conn.target)
            return False
        if area.connection_to(conn.target) is not None:
            return False
        if conn.direction is None:
            conn.direction = facing_direction(area, target)
        area.connections[conn.direction].append(conn)
        return True

    def remove_connection(self, from_id: int, to_id: int) -> bool:
        area = self.get(from_id)
        if area is None:
            return False
        for bucket in area.connections:
            for i, conn in enumerate(bucket):
                if conn.target == to_id:
                    del bucket[i]
                    return True
        return False

    def edge_count(self) -> int:
        return sum(area.connection_count() for area in self)

    def add_failure_penalty(self, from_id: int, to_id: int, penalty: float) -> bool:
        """Add ``penalty`` to the connection in both directions.

        Unknown areas are a silent no-op (logged at DEBUG). Returns ``True``
        when at least one direction was updated.
        """

        if penalty < 0:
            LOGGER.debug("Negative failure penalty ignored: %s -> %s (%s)", from_id, to_id, penalty)
            return False
        if self.get(from_id) is None or self.get(to_id) is None:
            LOGGER.debug("Failure penalty ignored for unknown areas: %s -> %s", from_id, to_id)
            return False
        updated = False
        for a, b in ((from_id, to_id), (to_id, from_id)):
            conn = self.connection(a, b)
            if conn is not None:
                conn.penalty += penalty
                updated = True
        if not updated:
            LOGGER.debug("Failure penalty found no connection between %s and %s", from_id, to_id)
        return updated

    # ------------------------------------------------------------------
    # Position queries
    # ------------------------------------------------------------------
    def closest_area(self, pos: Vec3) -> Optional[Area]:
        """Return the area best matching world position ``pos``.

        Areas whose footprint covers ``pos`` win, preferring the one whose
        surface height is nearest. Otherwise the area with the nearest
        center among the closest bounding boxes is returned.
        """

        if not self._areas:
            return None
        x, y, z = pos
        best: Optional[Area] = None
        best_dz = float("inf")
        for area_id in self._index.at_point(x, y):
            area = self.get(area_id)
            if area is None or not area.contains_xy(x, y):
                continue
            dz = abs(area.height_at(x, y) - z)
            if dz < best_dz:
                best, best_dz = area, dz
        if best is not None:
            return best

        best_dist = float("inf")
        for area_id in self._index.nearest(x, y, _NEAREST_CANDIDATES):
            area = self.get(area_id)
            if area is None:
                continue
            d = distance(area.center, pos)
            if d < best_dist:
                best, best_dist = area, d
        return best


__all__ = ["AreaGraph", "AreaNotFoundError"]
