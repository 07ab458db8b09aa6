"""A* search over the area graph.

Uses a binary heap keyed on ``(f, h, g, seq, id)``; the sequence number
keeps pops stable between equal keys. The search never evaluates
accessibility itself: every edge and its cost come from the ``neighbors``
callable.
"""

from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass
from math import inf
from typing import Callable, Dict, Iterable, List, Tuple

from .path import PathResult

Neighbors = Callable[[int], Iterable[Tuple[int, float]]]
Heuristic = Callable[[int, int], float]


@dataclass(slots=True)
class _QueueItem:
    f: float
    h: float
    g: float
    seq: int
    node: int

    def key(self) -> Tuple[float, float, float, int, int]:
        return (self.f, self.h, self.g, self.seq, self.node)


def astar(start: int, goal: int, neighbors: Neighbors, heuristic: Heuristic) -> PathResult:
    """Run A* from ``start`` to ``goal``.

    ``neighbors(id)`` yields ``(target_id, cost)`` pairs and
    ``heuristic(id, goal)`` estimates the remaining cost. Returns a
    :class:`PathResult` whose ``reason`` is ``"unreachable"`` when the open
    set empties first.
    """

    if start == goal:
        return PathResult(path=[start], reason=None, expanded=0, cost=0.0)

    g_score: Dict[int, float] = {start: 0.0}
    parent: Dict[int, int] = {}
    closed: set = set()

    counter = itertools.count()
    start_h = heuristic(start, goal)
    open_heap: List[Tuple[float, float, float, int, int]] = [
        _QueueItem(f=start_h, h=start_h, g=0.0, seq=next(counter), node=start).key()
    ]

    expanded = 0

    while open_heap:
        _, _, g, _, current = heapq.heappop(open_heap)
        if current in closed or g != g_score.get(current, inf):
            continue

        if current == goal:
            return PathResult(path=_reconstruct(current, parent), reason=None, expanded=expanded, cost=g)

        expanded += 1
        closed.add(current)

        for neighbor, cost in neighbors(current):
            if neighbor in closed:
                continue
            tentative_g = g + max(0.0, cost)
            if tentative_g >= g_score.get(neighbor, inf):
                continue
            g_score[neighbor] = tentative_g
            parent[neighbor] = current
            nh = heuristic(neighbor, goal)
            item = _QueueItem(f=tentative_g + nh, h=nh, g=tentative_g, seq=next(counter), node=neighbor)
            heapq.heappush(open_heap, item.key())

    return PathResult(path=None, reason="unreachable", expanded=expanded, cost=0.0)


def _reconstruct(end: int, parent: Dict[int, int]) -> List[int]:
    path = [end]
    cur = end
    while cur in parent:
        cur = parent[cur]
        path.append(cur)
    path.reverse()
    return path
