"""Accessibility classification for directed area transitions."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from .geometry import Vec3
from .mesh import Area
from .options import NavOptions
from .trace import TraceProvider

LOGGER = logging.getLogger(__name__)

FREE = 1.0
MODERATE_CLIMB = 1.5
CORNER_PATH = 2.0
PROBED_CLEAR = 3.0
PROVISIONAL = 5.0

Classification = Tuple[bool, float]


def _lift(pos: Vec3, dz: float) -> Vec3:
    return (pos[0], pos[1], pos[2] + dz)


def probe_hull(tracer: Optional[TraceProvider], start: Vec3, end: Vec3, lift: float) -> Optional[bool]:
    """Sweep the hull between two points lifted by ``lift``.

    Returns ``True`` when the sweep is clear, ``False`` when it hits, and
    ``None`` when no probe data is available.
    """

    if tracer is None:
        return None
    result = tracer.trace_hull(_lift(start, lift), _lift(end, lift))
    if result is None:
        return None
    return not result.hit


def corner_path_exists(a: Area, b: Area, max_jump: float) -> bool:
    for ca in a.corners:
        for cb in b.corners:
            if cb[2] - ca[2] <= max_jump:
                return True
    return False


def classify(
    a: Area,
    b: Area,
    allow_expensive: bool,
    tracer: Optional[TraceProvider] = None,
    options: Optional[NavOptions] = None,
) -> Classification:
    """Return ``(reachable, multiplier)`` for moving from ``a`` into ``b``.

    Cheap height rules are tried first; a hull sweep is only issued when
    the height gain exceeds the jump height, no corner pair is within
    reach, and ``allow_expensive`` is set. Unreachable transitions keep a
    large multiplier rather than being reported for deletion.
    """

    opts = options or NavOptions()
    rise = b.center[2] - a.center[2]

    if rise <= 0:
        return True, FREE
    if rise <= opts.step_height:
        return True, FREE
    if rise <= opts.max_jump:
        return True, MODERATE_CLIMB

    if corner_path_exists(a, b, opts.max_jump):
        return True, CORNER_PATH

    if not allow_expensive:
        return True, PROVISIONAL

    clear = probe_hull(tracer, a.center, b.center, opts.step_height)
    if clear is None:
        LOGGER.debug("Inconclusive probe %d -> %d; treating as unreachable", a.id, b.id)
        return False, opts.unreachable_multiplier
    if clear:
        return True, PROBED_CLEAR
    return True, opts.unreachable_multiplier
