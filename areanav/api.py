"""Public API for areanav.

Exposes :class:`Navigator`, the single owner of the loaded area graph and
of everything that mutates it: the connection processor, the circuit
breaker and the path-following state. Hosts drive it with :meth:`tick`
once per frame and query it with plain ids and positions.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, List, Optional, Union

from .astar import astar
from .circuit import CircuitBreaker
from .cost import CostModel, recalculate_costs
from .doors import synthesize_doors
from .finepoints import FineLayer
from .geometry import Vec3
from .graph import AreaGraph
from .navfile import EmptyMeshError, MissingFileError, NavMesh, load_nav, parse_nav
from .options import NavOptions
from .path import PathResult, Waypoint
from .processor import ConnectionProcessor
from .scheduler import WorkScheduler
from .trace import TraceProvider
from .waypoints import PathFollower

LOGGER = logging.getLogger(__name__)

PATH_WORK_ID = "pathfinding"


def _validate_id(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_pos(pos: object) -> bool:
    return (
        isinstance(pos, (tuple, list))
        and len(pos) == 3
        and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in pos)
    )


class Navigator:
    """Owns the navigation graph for one map session."""

    def __init__(
        self,
        options: Optional[NavOptions] = None,
        tracer: Optional[TraceProvider] = None,
        generate: Optional[Callable[[Path], None]] = None,
    ) -> None:
        self.options = options or NavOptions()
        self.tracer = tracer
        self._generate = generate
        self.tick_count = 0
        self.graph: Optional[AreaGraph] = None
        self.mesh: Optional[NavMesh] = None
        self.nav_path: Optional[Path] = None
        self.fine_layer: Optional[FineLayer] = None
        self.processor: Optional[ConnectionProcessor] = None
        self.cost_model = CostModel(options=self.options)
        self.breaker = CircuitBreaker(self.options, clock=self.now)
        self.scheduler = WorkScheduler(self.now, self.options.work_limit)
        self.follower = PathFollower()

    def now(self) -> int:
        return self.tick_count

    @property
    def loaded(self) -> bool:
        return self.graph is not None and len(self.graph) > 0

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def load_bytes(self, data: bytes) -> AreaGraph:
        """Parse ``data`` and install it as the current graph.

        A :class:`~areanav.navfile.FormatError` leaves the previous graph in
        place. An empty mesh installs an explicitly empty graph if nothing
        was loaded before, then re-raises.
        """

        try:
            mesh = parse_nav(data)
        except EmptyMeshError:
            if self.graph is None:
                self._install(AreaGraph(), None)
            raise
        graph = AreaGraph.from_navmesh(mesh)
        self._install(graph, mesh)
        return graph

    def load_file(self, path: Union[str, Path]) -> AreaGraph:
        """Load a ``.nav`` file, generating it once through the hook if missing."""

        p = Path(path)
        try:
            mesh = load_nav(p)
        except MissingFileError:
            if self._generate is None:
                raise
            LOGGER.warning("Nav file %s missing; generating and retrying once", p)
            self._generate(p)
            mesh = load_nav(p)
        except EmptyMeshError:
            if self.graph is None:
                self._install(AreaGraph(), None)
            raise
        self.nav_path = p
        graph = AreaGraph.from_navmesh(mesh)
        self._install(graph, mesh)
        return graph

    def reload(self) -> Optional[AreaGraph]:
        if self.nav_path is None:
            LOGGER.warning("Reload requested with no nav file loaded")
            return None
        return self.load_file(self.nav_path)

    def _install(self, graph: AreaGraph, mesh: Optional[NavMesh]) -> None:
        t0_ns = time.perf_counter_ns()
        removed = synthesize_doors(graph, self.options) if len(graph) else 0
        self.fine_layer = FineLayer.build(graph, self.options) if self.options.fine_grid and len(graph) else None
        if self.processor is not None:
            self.processor.stop()
        self.graph = graph
        self.mesh = mesh
        self.processor = ConnectionProcessor(
            graph,
            options=self.options,
            tracer=self.tracer,
            fine_layer=self.fine_layer,
            cost_model=self.cost_model,
        )
        self.breaker.clear()
        self.scheduler.clear()
        self.follower.clear()
        if len(graph):
            self.processor.start()
        LOGGER.info(
            "graph installed: areas=%d connections=%d dropped=%d duration_ms=%d",
            len(graph),
            graph.edge_count(),
            removed,
            int((time.perf_counter_ns() - t0_ns) / 1_000_000),
        )

    # ------------------------------------------------------------------
    # Frame driver
    # ------------------------------------------------------------------
    def tick(self, frame_time: Optional[float] = None) -> None:
        """Advance one frame: step the processor, run due work, prune failures."""

        self.tick_count += 1
        if self.processor is not None:
            self.processor.step(frame_time)
        self.scheduler.process()
        self.breaker.cleanup()

    def process_all(self) -> int:
        """Run the connection processor to completion; returns steps taken."""

        if self.processor is None:
            return 0
        return self.processor.run_to_completion()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def closest_area(self, pos: Vec3) -> Optional[int]:
        if self.graph is None or not _validate_pos(pos):
            return None
        area = self.graph.closest_area((float(pos[0]), float(pos[1]), float(pos[2])))
        return area.id if area is not None else None

    def find_path(self, start: int, goal: int, respect_blocks: bool = False) -> PathResult:
        """Compute an area path from ``start`` to ``goal``.

        Never raises for bad input: failures come back as ``reason``
        strings. With ``respect_blocks`` edges the circuit breaker holds
        blocked are not offered to the search.
        """

        graph = self.graph
        if graph is None or not len(graph):
            return PathResult(path=None, reason="not-loaded", expanded=0, cost=0.0)
        if not (_validate_id(start) and _validate_id(goal)):
            LOGGER.warning("Invalid input areas: start=%r goal=%r", start, goal)
            return PathResult(path=None, reason="invalid-input", expanded=0, cost=0.0)

        t0_ns = time.perf_counter_ns()
        goal_area = graph.get(goal)
        if graph.get(start) is None or goal_area is None:
            result = PathResult(path=None, reason="area-not-found", expanded=0, cost=0.0)
        else:
            goal_center = goal_area.center

            def heuristic(node: int, _goal: int) -> float:
                area = graph.get(node)
                return self.cost_model.heuristic(area.center, goal_center) if area is not None else 0.0

            def neighbors(node: int):
                for target, cost in graph.neighbors(node):
                    if respect_blocks and self.breaker.is_blocked(node, target):
                        continue
                    yield target, cost

            result = astar(start, goal, neighbors, heuristic)

        duration_ms = int((time.perf_counter_ns() - t0_ns) / 1_000_000)
        LOGGER.info(
            "find_path metrics: start=%s goal=%s reason=%s expanded=%d path_len=%d cost=%.1f duration_ms=%d respect_blocks=%s",
            start,
            goal,
            result.reason,
            result.expanded,
            len(result.path) if result.path is not None else 0,
            result.cost,
            duration_ms,
            respect_blocks,
        )
        return result

    def find_path_between(self, start_pos: Vec3, goal_pos: Vec3, respect_blocks: bool = False) -> PathResult:
        if self.graph is None or not len(self.graph):
            return PathResult(path=None, reason="not-loaded", expanded=0, cost=0.0)
        start = self.closest_area(start_pos)
        goal = self.closest_area(goal_pos)
        if start is None or goal is None:
            return PathResult(path=None, reason="invalid-input", expanded=0, cost=0.0)
        return self.find_path(start, goal, respect_blocks=respect_blocks)

    def plan(self, start_pos: Vec3, goal_pos: Vec3) -> PathResult:
        """Find a blocking-aware path and make it the current path."""

        result = self.find_path_between(start_pos, goal_pos, respect_blocks=True)
        if result.path is not None and self.graph is not None:
            self.follower.set_path(self.graph, result.path, tuple(goal_pos))
        else:
            self.follower.clear()
        return result

    def request_path(self, start_pos: Vec3, goal_pos: Vec3) -> Optional[PathResult]:
        """Plan through the scheduler; throttled calls return the last result."""

        return self.scheduler.add_work(
            self.plan, (start_pos, goal_pos), delay=self.options.path_delay, work_id=PATH_WORK_ID
        )

    # ------------------------------------------------------------------
    # Path following
    # ------------------------------------------------------------------
    @property
    def current_path(self) -> List[int]:
        return list(self.follower.path)

    def set_path(self, path: List[int], goal_pos: Optional[Vec3] = None) -> None:
        if self.graph is None:
            return
        self.follower.set_path(self.graph, path, goal_pos)

    def clear_path(self) -> None:
        self.follower.clear()

    def remove_current_node(self) -> Optional[int]:
        return self.follower.remove_current_node()

    def current_waypoint(self) -> Optional[Waypoint]:
        return self.follower.current_waypoint()

    def advance_waypoint(self) -> Optional[Waypoint]:
        return self.follower.advance()

    def skip_waypoints(self, count: int) -> Optional[Waypoint]:
        return self.follower.skip(count)

    # ------------------------------------------------------------------
    # Feedback and maintenance
    # ------------------------------------------------------------------
    def report_failure(self, from_id: int, to_id: int) -> bool:
        """Record a traversal failure; returns ``True`` when the edge is blocked."""

        if self.graph is None or from_id not in self.graph or to_id not in self.graph:
            LOGGER.debug("Failure report ignored for unknown edge %r -> %r", from_id, to_id)
            return False
        return self.breaker.add_failure(self.graph, from_id, to_id)

    def is_blocked(self, from_id: int, to_id: int) -> bool:
        return self.breaker.is_blocked(from_id, to_id)

    def add_failure_penalty(self, from_id: int, to_id: int, penalty: Optional[float] = None) -> bool:
        if self.graph is None:
            LOGGER.debug("Failure penalty ignored: no graph loaded")
            return False
        amount = self.options.failure_penalty if penalty is None else penalty
        return self.graph.add_failure_penalty(from_id, to_id, amount)

    def recalculate_costs(self) -> int:
        if self.graph is None:
            return 0
        return recalculate_costs(self.graph, self.cost_model)


__all__ = ["Navigator"]
