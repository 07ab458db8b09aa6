"""Hull-sweep walkability test between two ground positions.

Walks from ``start`` toward ``end`` in straight hops: each hop sweeps the
hull forward at step height to catch walls, then drops the hull onto the
ground at regular intervals to make sure there is floor underneath and no
ledge higher than a step. Slopes up to 45 degrees bend the walking
direction to follow the surface.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from .geometry import Vec3, distance, dot, lerp, manhattan_2d, normalize, sub
from .options import NavOptions
from .trace import TraceProvider

LOGGER = logging.getLogger(__name__)

MAX_FALL_DISTANCE = 250.0
MAX_ITERATIONS = 37
MIN_STEP_SIZE = 7.5
MAX_SURFACE_ANGLE = 45.0
GOAL_RADIUS = 24.0

_UP: Vec3 = (0.0, 0.0, 1.0)


def _raise(pos: Vec3, dz: float) -> Vec3:
    return (pos[0], pos[1], pos[2] + dz)


def _follow_surface(direction: Vec3, normal: Vec3) -> Vec3:
    direction = normalize(direction)
    cos_angle = max(-1.0, min(1.0, dot(normalize(normal), _UP)))
    if math.degrees(math.acos(cos_angle)) > MAX_SURFACE_ANGLE:
        return direction
    d = dot(direction, normal)
    return normalize((direction[0], direction[1], direction[2] - normal[2] * d))


def is_walkable(
    tracer: Optional[TraceProvider],
    start: Vec3,
    end: Vec3,
    options: Optional[NavOptions] = None,
    jump: bool = False,
) -> Optional[bool]:
    """Return whether the agent can walk from ``start`` to ``end``.

    ``jump`` allows ledges up to the jump height instead of the step
    height. Returns ``None`` when the tracer has no data.
    """

    opts = options or NavOptions()
    max_step = opts.max_jump if jump else opts.step_height

    if end[2] - start[2] > max_step:
        return False
    if tracer is None:
        return None

    ground = tracer.trace_hull(_raise(start, max_step), _raise(start, -MAX_FALL_DISTANCE))
    if ground is None:
        return None
    if not ground.hit:
        return False

    current = ground.end_pos
    last_pos = current
    direction = _follow_surface(sub(end, current), ground.normal)
    max_distance = manhattan_2d(start, end)

    for _ in range(MAX_ITERATIONS):
        hop = distance(current, end)
        target = (
            last_pos[0] + direction[0] * hop,
            last_pos[1] + direction[1] * hop,
            last_pos[2] + direction[2] * hop,
        )
        wall = tracer.trace_hull(_raise(last_pos, max_step), _raise(target, max_step))
        if wall is None:
            return None
        blocked = wall.fraction == 0
        current = _raise(wall.end_pos, -max_step)

        segments = max(1, int(distance(current, last_pos) // MIN_STEP_SIZE))
        floor_z = last_pos[2]
        for seg in range(1, segments + 1):
            pos = lerp(last_pos, current, seg / segments)
            probe = tracer.trace_hull(_raise(pos, max_step), _raise(pos, -MAX_FALL_DISTANCE))
            if probe is None:
                return None
            if not probe.hit:
                return False
            landing = probe.end_pos
            if landing[2] - floor_z > max_step:
                return False
            floor_z = landing[2]
            current = landing
            direction = _follow_surface(direction, probe.normal)

        remaining = manhattan_2d(current, end)
        if blocked or remaining > max_distance:
            return False
        if remaining < GOAL_RADIUS:
            return abs(end[2] - current[2]) < max_step
        last_pos = current

    LOGGER.debug("Walk %s -> %s did not converge", start, end)
    return False
