"""Waypoint derivation and path following state."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .geometry import Vec3, distance
from .graph import AreaGraph
from .mesh import Area
from .path import Waypoint

LOGGER = logging.getLogger(__name__)

HISTORY_LIMIT = 32
CENTER_SKIP_RATIO = 0.9


def _door_point(area: Area, target: Area) -> Optional[Vec3]:
    conn = area.connection_to(target.id)
    if conn is None or conn.door is None:
        return None
    return min(conn.door.points(), key=lambda p: distance(p, target.center))


def build_waypoints(graph: AreaGraph, path: Sequence[int], goal_pos: Optional[Vec3] = None) -> List[Waypoint]:
    """Turn an area path into door, center and goal waypoints.

    A center waypoint is dropped when the next door is reachable directly in
    less than ``CENTER_SKIP_RATIO`` of the distance through the center.
    """

    waypoints: List[Waypoint] = []
    if not path:
        return waypoints
    areas = [graph.get(area_id) for area_id in path]

    for i in range(len(areas) - 1):
        a, b = areas[i], areas[i + 1]
        if a is None or b is None:
            LOGGER.debug("Waypoint build skipped missing area in %s -> %s", path[i], path[i + 1])
            continue
        door = _door_point(a, b)
        if door is not None:
            waypoints.append(Waypoint(kind="door", pos=door, area_id=b.id, from_area=a.id))
        if i + 2 >= len(areas):
            break
        c = areas[i + 2]
        next_door = _door_point(b, c) if c is not None else None
        if door is not None and next_door is not None:
            direct = distance(door, next_door)
            via_center = distance(door, b.center) + distance(b.center, next_door)
            if direct < CENTER_SKIP_RATIO * via_center:
                continue
        waypoints.append(Waypoint(kind="center", pos=b.center, area_id=b.id))

    last = areas[-1]
    if goal_pos is None and last is not None:
        goal_pos = last.center
    if goal_pos is not None:
        waypoints.append(Waypoint(kind="goal", pos=goal_pos, area_id=path[-1]))
    return waypoints


class PathFollower:
    """Current path, its waypoints and the consumed-node history."""

    def __init__(self) -> None:
        self.path: List[int] = []
        self.waypoints: List[Waypoint] = []
        self.index = 0
        self.history: List[int] = []

    def set_path(self, graph: AreaGraph, path: Sequence[int], goal_pos: Optional[Vec3] = None) -> None:
        self.path = list(path)
        self.waypoints = build_waypoints(graph, self.path, goal_pos)
        self.index = 0

    def clear(self) -> None:
        self.path = []
        self.waypoints = []
        self.index = 0

    def remove_current_node(self) -> Optional[int]:
        if not self.path:
            return None
        node = self.path.pop(0)
        self.history.append(node)
        if len(self.history) > HISTORY_LIMIT:
            del self.history[: len(self.history) - HISTORY_LIMIT]
        return node

    def current_waypoint(self) -> Optional[Waypoint]:
        if 0 <= self.index < len(self.waypoints):
            return self.waypoints[self.index]
        return None

    def advance(self) -> Optional[Waypoint]:
        """Move past the current waypoint and return the next one.

        Passing a door or center waypoint drops path nodes until the path
        starts at the waypoint's area.
        """

        wp = self.current_waypoint()
        if wp is None:
            return None
        self.index += 1
        if wp.kind != "goal" and wp.area_id in self.path:
            while self.path and self.path[0] != wp.area_id:
                self.remove_current_node()
        return self.current_waypoint()

    def skip(self, count: int) -> Optional[Waypoint]:
        for _ in range(max(0, count)):
            if self.advance() is None:
                break
        return self.current_waypoint()
