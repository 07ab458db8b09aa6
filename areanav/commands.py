"""Operational text commands.

Each command takes space-separated arguments and returns the text it
would print; nothing here holds state of its own.
"""

from __future__ import annotations

import logging
import shlex
from typing import Callable, Dict, List, Optional

from .api import Navigator
from .cost import HEIGHT_PENALTY_PER_STEP
from .navfile import FormatError, MissingFileError

LOGGER = logging.getLogger(__name__)

PHASE_NAMES = {
    1: "Basic validation",
    2: "Expensive fallback",
    3: "Stair patching",
    4: "Fine point stitching",
}

Handler = Callable[[Navigator, List[str]], str]


def _parse_edge(args: List[str]) -> Optional[tuple]:
    if len(args) < 3:
        return None
    try:
        return int(args[1]), int(args[2])
    except ValueError:
        return None


def cmd_circuit_breaker(nav: Navigator, args: List[str]) -> str:
    sub = args[0] if args else ""
    breaker = nav.breaker
    if sub == "status":
        now = nav.now()
        lines = ["Circuit Breaker Status:"]
        total_failures = 0
        blocked = 0
        for (a, b), rec in breaker.records():
            total_failures += rec.count
            if breaker.is_blocked(a, b):
                blocked += 1
                left = max(0, nav.options.block_duration - (now - rec.last_failure))
                lines.append(f"  {a}->{b}: {rec.count} failures, BLOCKED ({left} ticks left)")
            else:
                lines.append(f"  {a}->{b}: {rec.count} failures, active")
        lines.append(
            f"Summary: {len(breaker)} connections tracked, {blocked} currently blocked, {total_failures} total failures"
        )
        lines.append(
            f"Settings: max_failures={nav.options.max_failures}, block_duration={nav.options.block_duration} ticks"
        )
        return "\n".join(lines)
    if sub == "clear":
        breaker.clear()
        return "Circuit breaker cleared - all connections reset"
    if sub == "block":
        edge = _parse_edge(args)
        if edge is None:
            return "Usage: pf_circuit_breaker block <nodeA_id> <nodeB_id>"
        if nav.graph is None or edge[0] not in nav.graph or edge[1] not in nav.graph:
            LOGGER.debug("Manual block ignored for unknown edge %s -> %s", *edge)
            return f"Connection {edge[0]}->{edge[1]} not found in graph"
        breaker.block(nav.graph, *edge)
        return f"Manually blocked connection {edge[0]}->{edge[1]}"
    if sub == "unblock":
        edge = _parse_edge(args)
        if edge is None:
            return "Usage: pf_circuit_breaker unblock <nodeA_id> <nodeB_id>"
        if breaker.unblock(*edge):
            return f"Manually unblocked connection {edge[0]}->{edge[1]}"
        return f"Connection {edge[0]}->{edge[1]} not found in circuit breaker"
    return "Usage: pf_circuit_breaker status | clear | block <nodeA> <nodeB> | unblock <nodeA> <nodeB>"


def cmd_connections(nav: Navigator, args: List[str]) -> str:
    sub = args[0] if args else ""
    proc = nav.processor
    if sub == "status":
        if proc is None or not proc.is_processing:
            return "Connection processing is not active"
        st = proc.status()
        return "\n".join(
            [
                "Connection Processing Active:",
                f"  Phase: {st.current_phase} ({PHASE_NAMES.get(st.current_phase, 'Unknown')})",
                f"  Progress: {st.processed_nodes}/{st.total_nodes} nodes processed",
                f"  Connections found: {st.connections_found}",
                f"  Expensive checks used: {st.expensive_checks_used}",
                f"  Fine point connections added: {st.fine_point_connections_added}",
                f"  Current FPS: {st.current_fps:.1f} (batch size: {st.current_batch_size})",
            ]
        )
    if sub == "stop":
        if proc is not None:
            proc.stop()
        return "Stopped connection processing"
    if sub == "start":
        if proc is None or not nav.loaded:
            return "No nodes loaded"
        proc.start()
        return "Starting connection processing..."
    return "Usage: pf_connections status | stop | start"


def cmd_stairs(nav: Navigator, args: List[str]) -> str:
    graph = nav.graph
    if graph is None or not len(graph):
        return "No navigation nodes loaded"
    if (args[0] if args else "") != "check":
        return "Usage: pf_stairs check"
    total = 0
    one_way = 0
    for area in graph:
        for conn in area.iter_connections():
            total += 1
            target = graph.get(conn.target)
            if target is None or graph.has_connection(target.id, area.id):
                continue
            if nav.cost_model.in_stair_band(area, target):
                one_way += 1
    return "\n".join(
        [
            "Connection Analysis:",
            f"  Total connections: {total}",
            f"  One-way stair connections: {one_way}",
            f"  Potential patches: {one_way}",
        ]
    )


def cmd_costs(nav: Navigator, args: List[str]) -> str:
    sub = args[0] if args else ""
    if sub == "recalc":
        count = nav.recalculate_costs()
        return f"Connection costs recalculated for current walking mode ({count} connections)"
    if sub == "info":
        mode = nav.options.walkable_mode
        lines = [f"Walking Mode: {mode}"]
        if mode == "smooth":
            lines.append(f"  - Uses {nav.options.step_height:g}-unit steps + height penalties")
            lines.append(f"  - Adds {HEIGHT_PENALTY_PER_STEP:g} cost per {nav.options.step_height:g} units of height")
        else:
            lines.append(f"  - Allows {nav.options.max_jump:g}-unit jumps without penalties")
        if nav.graph is not None:
            total = 0
            costly = 0
            for area in nav.graph:
                for conn in area.iter_connections():
                    total += 1
                    if conn.multiplier > 1 or conn.penalty > 0:
                        costly += 1
            lines.append(f"Connections: {total} total, {costly} with extra costs")
        return "\n".join(lines)
    return "Usage: pf_costs recalc | info"


def cmd_reload(nav: Navigator, args: List[str]) -> str:
    try:
        graph = nav.reload()
    except (FormatError, MissingFileError) as exc:
        LOGGER.warning("Reload failed: %s", exc)
        return f"Reload failed: {exc}"
    if graph is None:
        return "No nav file to reload"
    return f"Reloaded {nav.nav_path}: {len(graph)} areas"


COMMANDS: Dict[str, Handler] = {
    "pf_circuit_breaker": cmd_circuit_breaker,
    "pf_connections": cmd_connections,
    "pf_stairs": cmd_stairs,
    "pf_costs": cmd_costs,
    "pf_reload": cmd_reload,
}


def execute(nav: Navigator, line: str) -> str:
    """Run one command line against ``nav`` and return its output."""

    try:
        parts = shlex.split(line)
    except ValueError as exc:
        return f"Error: {exc}"
    if not parts:
        return ""
    handler = COMMANDS.get(parts[0])
    if handler is None:
        return f"Unknown command: {parts[0]}"
    LOGGER.debug("command %s %s", parts[0], parts[1:])
    return handler(nav, parts[1:])
