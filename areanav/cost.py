"""Cost and heuristic utilities for areanav."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from .geometry import Vec3, manhattan_2d
from .graph import AreaGraph
from .mesh import Area
from .options import NavOptions

LOGGER = logging.getLogger(__name__)

HEIGHT_PENALTY_PER_STEP = 10.0
STAIR_BAND_MAX = 200.0
DOWNHILL_MULTIPLIER = 1.0
UPHILL_MULTIPLIER = 1.5
STEEP_UPHILL_MULTIPLIER = 3.0


@dataclass(slots=True)
class CostModel:
    """Centralizes cost decisions so every phase prices edges the same way.

    Base cost is the horizontal Manhattan distance between area centers;
    accessibility multipliers scale it and the ``smooth`` preset adds a
    penalty per step unit of height gain.
    """

    options: NavOptions = field(default_factory=NavOptions)
    """Runtime configuration controlling presets and thresholds."""

    def base_cost(self, a: Area, b: Area) -> float:
        """Return the unscaled distance cost from ``a`` to ``b``."""

        return manhattan_2d(a.center, b.center)

    def height_penalty(self, a: Area, b: Area) -> float:
        """Return the smooth-preset penalty for climbing from ``a`` to ``b``."""

        if self.options.walkable_mode != "smooth":
            return 0.0
        rise = b.center[2] - a.center[2]
        if rise <= self.options.step_height:
            return 0.0
        return math.floor(rise / self.options.step_height) * HEIGHT_PENALTY_PER_STEP

    def edge_cost(self, a: Area, b: Area, multiplier: float) -> float:
        return self.base_cost(a, b) * multiplier + self.height_penalty(a, b)

    def reverse_multiplier(self, source: Area, target: Area) -> float:
        """Return the multiplier for a patched connection ``source -> target``."""

        rise = target.center[2] - source.center[2]
        if rise <= 0:
            return DOWNHILL_MULTIPLIER
        if rise > self.options.max_jump:
            return STEEP_UPHILL_MULTIPLIER
        return UPHILL_MULTIPLIER

    def in_stair_band(self, a: Area, b: Area) -> bool:
        dz = abs(b.center[2] - a.center[2])
        return self.options.step_height < dz <= STAIR_BAND_MAX

    def heuristic(self, current: Vec3, goal: Vec3) -> float:
        """Return the horizontal Manhattan distance between two positions."""

        return manhattan_2d(current, goal)


def recalculate_costs(graph: AreaGraph, cost_model: CostModel) -> int:
    """Reset every connection to base distance plus the height penalty.

    Multipliers and runtime penalties are discarded. Returns the number of
    connections updated.
    """

    updated = 0
    for area in graph:
        for conn in area.iter_connections():
            target = graph.get(conn.target)
            if target is None:
                LOGGER.debug("Skipping cost reset %d -> %d: unknown target", area.id, conn.target)
                continue
            conn.multiplier = 1.0
            conn.penalty = 0.0
            if conn.fine:
                continue
            conn.base_cost = cost_model.edge_cost(area, target, 1.0)
            updated += 1
    LOGGER.info("connection costs recalculated: %d", updated)
    return updated
