"""Engine configuration data models for areanav."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Literal

WalkableMode = Literal["smooth", "aggressive"]
UnblockPolicy = Literal["reset", "halve"]

STEP_HEIGHT = 18.0
MAX_JUMP = 72.0
HITBOX_WIDTH = 24.0
CLEARANCE_OFFSET = 34.0
UNREACHABLE_MULTIPLIER = 10.0


@dataclass(slots=True)
class NavOptions:
    """Tunables for graph construction, processing and runtime feedback.

    Safe to serialize to and from JSON with :meth:`to_json_dict` and
    :meth:`from_json_dict`. Distances are in world units, durations in
    ticks.
    """

    walkable_mode: WalkableMode = "smooth"
    """``"smooth"`` adds a height-gain penalty to costs; ``"aggressive"`` does not."""

    allow_expensive_checks: bool = True
    """Permit hull-sweep probes during the expensive and stair phases."""

    cleanup_connections: bool = True
    """Drop raw mesh connections for which no door can be synthesized."""

    step_height: float = STEP_HEIGHT
    """Height the agent climbs without jumping."""

    max_jump: float = MAX_JUMP
    """Maximum height gain reachable with a crouch jump."""

    hitbox_width: float = HITBOX_WIDTH
    """Clearance kept from the sides of a door."""

    clearance_offset: float = CLEARANCE_OFFSET
    """Back-off applied away from an unreachable door side."""

    unreachable_multiplier: float = UNREACHABLE_MULTIPLIER
    """Multiplier kept on probed-unreachable connections instead of deleting them."""

    target_fps: float = 24.0
    """Frame rate the processor tries to preserve while adapting its batch."""

    initial_batch_size: int = 5
    min_batch_size: int = 1
    max_batch_size: int = 20

    max_failures: int = 2
    """Failures on one directed edge before it is blocked."""

    block_duration: int = 300
    """Ticks after the last failure before a blocked edge is released."""

    failure_penalty: float = 100.0
    """Cost added to both directions on every reported failure."""

    block_penalty: float = 500.0
    """One-time cost added when an edge becomes blocked."""

    cleanup_interval: int = 180
    """Ticks between circuit breaker cleanup passes."""

    stale_factor: int = 2
    """Unblocked records older than ``stale_factor * block_duration`` are pruned."""

    max_entries: int = 500
    """Hard cap on circuit breaker records."""

    unblock_policy: UnblockPolicy = "reset"
    """How the failure count is reduced when a block expires."""

    path_delay: int = 33
    """Minimum ticks between scheduled path searches for the same request."""

    work_limit: int = 1
    """Scheduled work items executed per tick."""

    fine_grid: bool = False
    """Build the fine point layer and run the stitching phase."""

    extras: Dict[str, Any] = field(default_factory=dict)
    """Arbitrary additional flags kept for forward compatibility."""

    def to_json_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable dictionary representation."""

        payload = {f.name: getattr(self, f.name) for f in fields(self)}
        payload["extras"] = dict(self.extras)
        return payload

    @classmethod
    def from_json_dict(cls, payload: Dict[str, Any]) -> "NavOptions":
        """Build options from a mapping; raises ``ValueError`` on bad keys or values."""

        if not isinstance(payload, dict):
            raise ValueError(f"options must be a JSON object; got {type(payload).__name__}")
        opts = cls()
        opts.update(payload)
        return opts

    def update(self, payload: Dict[str, Any]) -> None:
        """Merge ``payload`` into these options, validating each value."""

        known = {f.name: f for f in fields(self)}
        defaults = type(self)()
        for key, value in payload.items():
            if key not in known:
                raise ValueError(f"unknown option {key!r}")
            default = getattr(defaults, key)
            if key == "extras":
                if not isinstance(value, dict):
                    raise ValueError("extras must be an object")
                value = dict(value)
            elif key == "walkable_mode":
                if value not in ("smooth", "aggressive"):
                    raise ValueError(f"walkable_mode must be 'smooth' or 'aggressive'; got {value!r}")
            elif key == "unblock_policy":
                if value not in ("reset", "halve"):
                    raise ValueError(f"unblock_policy must be 'reset' or 'halve'; got {value!r}")
            elif isinstance(default, bool):
                if not isinstance(value, bool):
                    raise ValueError(f"{key} must be a boolean")
            elif isinstance(default, int):
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ValueError(f"{key} must be an integer")
            elif isinstance(default, float):
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise ValueError(f"{key} must be a number")
                value = float(value)
            setattr(self, key, value)
