"""Geometry probe interface consumed from the host environment."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from .geometry import Vec3, lerp


@dataclass(slots=True)
class TraceResult:
    """Outcome of sweeping the player hull from ``start`` to ``end``."""

    start: Vec3
    end: Vec3

    fraction: float
    """Portion of the sweep completed before the first hit, in ``[0, 1]``."""

    normal: Vec3 = (0.0, 0.0, 1.0)
    """Normal of the blocking surface; meaningless when ``fraction == 1``."""

    @property
    def hit(self) -> bool:
        return self.fraction < 1.0

    @property
    def end_pos(self) -> Vec3:
        return lerp(self.start, self.end, self.fraction)


class TraceProvider(Protocol):
    """Protocol describing the host's hull sweep primitive."""

    def trace_hull(self, start: Vec3, end: Vec3) -> Optional[TraceResult]:
        """Sweep the hull between two points; ``None`` when no data is available."""
