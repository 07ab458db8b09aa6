"""Bounding-box index over area footprints."""

from __future__ import annotations

from typing import List, Tuple

from rtree import index as rtree_index

BBox = Tuple[float, float, float, float]


class AreaIndex:
    """R-tree over ``(min_x, min_y, max_x, max_y)`` boxes keyed by area id."""

    def __init__(self) -> None:
        p = rtree_index.Property()
        p.interleaved = True
        self._rt = rtree_index.Index(properties=p)
        self._items: dict[int, BBox] = {}

    def __len__(self) -> int:
        return len(self._items)

    def insert(self, id_: int, bbox: BBox) -> None:
        if id_ in self._items:
            self._rt.delete(id_, self._items[id_])
        self._items[id_] = bbox
        self._rt.insert(id_, bbox)

    def intersects(self, bbox: BBox, pad: float = 0.0) -> List[int]:
        xmin, ymin, xmax, ymax = bbox
        return sorted(self._rt.intersection((xmin - pad, ymin - pad, xmax + pad, ymax + pad)))

    def at_point(self, x: float, y: float, pad: float = 0.0) -> List[int]:
        return self.intersects((x, y, x, y), pad)

    def nearest(self, x: float, y: float, count: int = 1) -> List[int]:
        if not self._items:
            return []
        return list(self._rt.nearest((x, y, x, y), count))
