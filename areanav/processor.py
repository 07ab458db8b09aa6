"""Frame-budgeted connection processing.

The processor annotates an :class:`AreaGraph` in four phases, each fed by
its own work queue and drained a batch at a time by :meth:`step`:

1. basic costs from cheap accessibility rules
2. hull probes for connections left with a provisional multiplier
3. reverse connections for stair-like one-way edges
4. fine point stitching between touching areas (only with a fine layer)

The batch size adapts to the measured frame rate so the host's render loop
is never stalled. Stopping leaves every annotation already applied.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Any, Deque, Dict, Optional

from .accessibility import PROVISIONAL, classify, probe_hull
from .cost import CostModel
from .doors import build_door, edge_midpoint_door
from .finepoints import FineLayer, StitchCandidate
from .graph import AreaGraph
from .mesh import Connection
from .options import NavOptions
from .trace import TraceProvider
from .walkable import is_walkable

LOGGER = logging.getLogger(__name__)


class Phase(IntEnum):
    IDLE = 0
    BASIC = 1
    EXPENSIVE = 2
    STAIRS = 3
    FINE = 4


@dataclass(slots=True)
class ProcessorStatus:
    """Snapshot of processor progress."""

    is_processing: bool
    current_phase: int
    total_nodes: int
    processed_nodes: int
    connections_found: int
    expensive_checks_used: int
    fine_point_connections_added: int
    stairs_patched: int
    skipped: int
    current_batch_size: int
    current_fps: float

    def to_json_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ConnectionProcessor:
    """Explicit state machine driven once per frame through :meth:`step`."""

    def __init__(
        self,
        graph: AreaGraph,
        options: Optional[NavOptions] = None,
        tracer: Optional[TraceProvider] = None,
        fine_layer: Optional[FineLayer] = None,
        cost_model: Optional[CostModel] = None,
    ) -> None:
        self.graph = graph
        self.options = options or NavOptions()
        self.tracer = tracer
        self.fine_layer = fine_layer
        self.cost_model = cost_model or CostModel(options=self.options)
        self._phase = Phase.IDLE
        self._queue: Deque[Any] = deque()
        self._uncertain: Deque[tuple] = deque()
        self._batch = self.options.initial_batch_size
        self._fps = 0.0
        self._started_ns = 0
        self._reset_counters()

    def _reset_counters(self) -> None:
        self.total_nodes = 0
        self.processed_nodes = 0
        self.connections_found = 0
        self.expensive_checks_used = 0
        self.fine_point_connections_added = 0
        self.stairs_patched = 0
        self.skipped = 0

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------
    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def is_processing(self) -> bool:
        return self._phase != Phase.IDLE

    @property
    def batch_size(self) -> int:
        return self._batch

    def start(self) -> None:
        """Begin (or restart) processing from phase 1 with a fresh queue."""

        if self.is_processing:
            LOGGER.info("Restarting connection processing; discarding %d queued items", len(self._queue))
        self._reset_counters()
        self._uncertain.clear()
        self._batch = self.options.initial_batch_size
        self._started_ns = time.perf_counter_ns()
        self._phase = Phase.BASIC
        self._queue = deque(area.id for area in self.graph)
        self.total_nodes = len(self._queue)
        LOGGER.info("connection processing started: areas=%d batch=%d", self.total_nodes, self._batch)
        if not self._queue:
            self._advance()

    def stop(self) -> None:
        if not self.is_processing:
            return
        LOGGER.info("connection processing stopped in phase %s", self._phase.name.lower())
        self._phase = Phase.IDLE
        self._queue.clear()
        self._uncertain.clear()

    def step(self, frame_time: Optional[float] = None) -> bool:
        """Process one batch; returns ``True`` while work remains.

        ``frame_time`` is the last frame's duration in seconds and drives
        batch size adaptation. Calling while idle is a no-op.
        """

        if not self.is_processing:
            return False
        if frame_time is not None:
            self._adjust_batch(frame_time)

        budget = self._batch
        while budget > 0 and self._queue:
            item = self._queue.popleft()
            self._process(item)
            budget -= 1

        if not self._queue:
            self._advance()
        return self.is_processing

    def run_to_completion(self, max_steps: int = 1_000_000) -> int:
        """Step until idle; returns the number of steps taken."""

        steps = 0
        while self.is_processing and steps < max_steps:
            self.step()
            steps += 1
        return steps

    def status(self) -> ProcessorStatus:
        return ProcessorStatus(
            is_processing=self.is_processing,
            current_phase=int(self._phase),
            total_nodes=self.total_nodes,
            processed_nodes=self.processed_nodes,
            connections_found=self.connections_found,
            expensive_checks_used=self.expensive_checks_used,
            fine_point_connections_added=self.fine_point_connections_added,
            stairs_patched=self.stairs_patched,
            skipped=self.skipped,
            current_batch_size=self._batch,
            current_fps=self._fps,
        )

    def progress(self) -> Dict[str, Any]:
        """Return a JSON-serializable cursor describing pending work."""

        return {
            "phase": self._phase.name.lower(),
            "queued": len(self._queue),
            "uncertain": len(self._uncertain),
            "batch_size": self._batch,
            "processed_nodes": self.processed_nodes,
            "total_nodes": self.total_nodes,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _adjust_batch(self, frame_time: float) -> None:
        if frame_time <= 0:
            return
        self._fps = 1.0 / frame_time
        target = self.options.target_fps
        max_frame_time = 1.0 / target
        if self._fps < target:
            self._batch = max(self.options.min_batch_size, self._batch - 1)
        elif self._fps > target * 1.5 and frame_time < max_frame_time * 0.8:
            self._batch = min(self.options.max_batch_size, self._batch + 1)

    def _shrink_batch(self, divisor: int) -> None:
        self._batch = max(self.options.min_batch_size, self._batch // divisor)

    def _advance(self) -> None:
        while not self._queue and self.is_processing:
            if self._phase == Phase.BASIC:
                self._phase = Phase.EXPENSIVE
                self._queue = deque(self._uncertain)
                self._uncertain.clear()
                self._shrink_batch(4)
            elif self._phase == Phase.EXPENSIVE:
                self._phase = Phase.STAIRS
                self._queue = deque(area.id for area in self.graph)
                self._shrink_batch(2)
            elif self._phase == Phase.STAIRS and self.fine_layer is not None:
                self._phase = Phase.FINE
                self._queue = deque(self.fine_layer.stitch_candidates(self.graph))
                self._shrink_batch(2)
            else:
                self._finish()
                return
            LOGGER.info(
                "connection processing phase %s: queued=%d batch=%d",
                self._phase.name.lower(),
                len(self._queue),
                self._batch,
            )

    def _finish(self) -> None:
        elapsed_ms = int((time.perf_counter_ns() - self._started_ns) / 1_000_000)
        self._phase = Phase.IDLE
        LOGGER.info(
            "connection processing finished: areas=%d connections=%d expensive=%d stairs=%d fine=%d skipped=%d duration_ms=%d",
            self.processed_nodes,
            self.connections_found,
            self.expensive_checks_used,
            self.stairs_patched,
            self.fine_point_connections_added,
            self.skipped,
            elapsed_ms,
        )

    def _process(self, item: Any) -> None:
        if self._phase == Phase.BASIC:
            self._process_basic(item)
        elif self._phase == Phase.EXPENSIVE:
            self._process_expensive(item)
        elif self._phase == Phase.STAIRS:
            self._process_stairs(item)
        elif self._phase == Phase.FINE:
            self._process_fine(item)

    def _process_basic(self, area_id: int) -> None:
        area = self.graph.get(area_id)
        if area is None:
            self.skipped += 1
            LOGGER.debug("Skipping missing area %s", area_id)
            return
        for conn in area.iter_connections():
            if conn.fine:
                continue
            target = self.graph.get(conn.target)
            if target is None:
                self.skipped += 1
                LOGGER.debug("Skipping connection %d -> %s: unknown target", area.id, conn.target)
                continue
            _, multiplier = classify(area, target, False, None, self.options)
            conn.multiplier = multiplier
            conn.base_cost = self.cost_model.edge_cost(area, target, multiplier)
            self.connections_found += 1
            if multiplier >= PROVISIONAL:
                self._uncertain.append((area.id, target.id))
        self.processed_nodes += 1

    def _process_expensive(self, item: tuple) -> None:
        from_id, to_id = item
        area = self.graph.get(from_id)
        target = self.graph.get(to_id)
        conn = self.graph.connection(from_id, to_id)
        if area is None or target is None or conn is None:
            self.skipped += 1
            LOGGER.debug("Skipping uncertain connection %s -> %s: no longer present", from_id, to_id)
            return
        tracer = self.tracer if self.options.allow_expensive_checks else None
        reachable, multiplier = classify(area, target, True, tracer, self.options)
        if tracer is not None:
            self.expensive_checks_used += 1
        conn.multiplier = multiplier
        conn.base_cost = self.cost_model.edge_cost(area, target, multiplier)
        if not reachable:
            LOGGER.debug("Connection %d -> %d kept with multiplier %.1f", from_id, to_id, multiplier)

    def _process_stairs(self, area_id: int) -> None:
        area = self.graph.get(area_id)
        if area is None:
            self.skipped += 1
            return
        if not self.options.allow_expensive_checks:
            return
        for conn in list(area.iter_connections()):
            target = self.graph.get(conn.target)
            if target is None or conn.fine:
                continue
            if self.graph.has_connection(target.id, area.id):
                continue
            if not self.cost_model.in_stair_band(area, target):
                continue
            self.expensive_checks_used += 1
            if probe_hull(self.tracer, target.center, area.center, self.options.step_height) is not True:
                continue
            multiplier = self.cost_model.reverse_multiplier(target, area)
            reverse = Connection(
                target=area.id,
                base_cost=self.cost_model.base_cost(target, area) * multiplier,
                multiplier=multiplier,
            )
            door = build_door(target, area, self.options) or edge_midpoint_door(target, area)
            reverse.door = door
            reverse.direction = door.direction
            reverse.needs_jump = door.needs_jump
            reverse.one_way_descent = door.one_way_descent
            if self.graph.add_connection(target.id, reverse):
                self.stairs_patched += 1
                LOGGER.debug("Patched reverse connection %d -> %d (x%.1f)", target.id, area.id, multiplier)

    def _process_fine(self, candidate: StitchCandidate) -> None:
        layer = self.fine_layer
        if layer is None:
            return
        pa = layer.point(candidate.a)
        pb = layer.point(candidate.b)
        if pa is None or pb is None:
            self.skipped += 1
            return
        jump = self.options.walkable_mode == "aggressive"
        if is_walkable(self.tracer, pa.pos, pb.pos, self.options, jump=jump) is not True:
            return
        layer.stitch(self.graph, candidate)
        self.fine_point_connections_added += 1
