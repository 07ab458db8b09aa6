"""Small vector helpers shared across the navigation engine."""

from __future__ import annotations

import math
from typing import Tuple

Vec3 = Tuple[float, float, float]
"""Alias for a world position expressed as ``(x, y, z)``."""


def sub(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def dot(a: Vec3, b: Vec3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def length(a: Vec3) -> float:
    return math.sqrt(dot(a, a))


def distance(a: Vec3, b: Vec3) -> float:
    return length(sub(a, b))


def distance_2d(a: Vec3, b: Vec3) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def manhattan_2d(a: Vec3, b: Vec3) -> float:
    """Return horizontal Manhattan distance, ignoring height."""

    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def normalize(a: Vec3) -> Vec3:
    n = length(a)
    if n == 0:
        return a
    return (a[0] / n, a[1] / n, a[2] / n)


def lerp(a: Vec3, b: Vec3, t: float) -> Vec3:
    return (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t, a[2] + (b[2] - a[2]) * t)


def midpoint(a: Vec3, b: Vec3) -> Vec3:
    return lerp(a, b, 0.5)


def bilinear_z(nw: Vec3, ne: Vec3, se: Vec3, sw: Vec3, x: float, y: float) -> float:
    """Interpolate the height of a quad at ``(x, y)``.

    The quad is axis aligned in the horizontal plane with ``nw`` holding the
    minimum x/y and ``se`` the maximum. Points outside are clamped.
    """

    width = se[0] - nw[0]
    height = se[1] - nw[1]
    u = 0.0 if width == 0 else min(1.0, max(0.0, (x - nw[0]) / width))
    v = 0.0 if height == 0 else min(1.0, max(0.0, (y - nw[1]) / height))
    top = nw[2] + (ne[2] - nw[2]) * u
    bottom = sw[2] + (se[2] - sw[2]) * u
    return top + (bottom - top) * v
