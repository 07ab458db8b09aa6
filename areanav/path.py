"""Path-related data models for areanav.

Paths hold area ids rather than area objects; callers resolve ids against
the live graph when they need geometry. All shapes are JSON-friendly.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Literal, Optional

from .geometry import Vec3

WaypointKind = Literal["door", "center", "goal"]
"""Literal string type capturing the supported waypoint kinds."""


@dataclass(slots=True)
class PathResult:
    """Outcome of a pathfinding request."""

    path: Optional[List[int]]
    """Area ids from start to goal inclusive, or ``None`` when no path exists."""

    reason: Optional[str]
    """Reason string explaining why a path was not produced, when relevant."""

    expanded: int
    """Total node expansions performed by the search."""

    cost: float
    """Sum of connection costs along the path."""

    @property
    def found(self) -> bool:
        return self.path is not None

    def to_json_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable dictionary representation."""

        return asdict(self)


@dataclass(slots=True)
class Waypoint:
    """Fine-grained movement target derived from an area path."""

    kind: WaypointKind
    pos: Vec3
    area_id: int
    """Area the agent is in once this waypoint is reached."""

    from_area: Optional[int] = None
    """For door waypoints, the area the door is left from."""

    def to_json_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"kind": self.kind, "pos": list(self.pos), "area_id": self.area_id}
        if self.from_area is not None:
            payload["from_area"] = self.from_area
        return payload
