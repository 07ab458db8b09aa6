"""Command-line interface for areanav pathfinding.

Usage examples:
  python -m areanav --nav maps/ctf_2fort.nav --start "0,0,0" --goal "512,-96,64" --json
  python -m areanav --nav maps/ctf_2fort.nav --command "pf_stairs check"
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from .api import Navigator
from .commands import execute
from .geometry import Vec3
from .navfile import FormatError, MissingFileError
from .options import NavOptions
from .path import PathResult

LOGGER = logging.getLogger(__name__)


def _parse_pos(value: str) -> Vec3:
    try:
        parts = [float(p.strip()) for p in value.split(",")]
        if len(parts) != 3:
            raise ValueError
        return (parts[0], parts[1], parts[2])
    except Exception as exc:  # noqa: BLE001
        raise argparse.ArgumentTypeError(
            f"Expected position in form 'x,y,z', got: {value!r}"
        ) from exc


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="areanav",
        description="A* pathfinding over a Source engine navigation mesh",
    )

    p.add_argument("--nav", type=str, required=True, help="Path to the .nav file")

    # Query
    p.add_argument("--start", type=_parse_pos, default=None, help="Start position: x,y,z")
    p.add_argument("--goal", type=_parse_pos, default=None, help="Goal position: x,y,z")
    p.add_argument("--command", type=str, default=None, help="Run an operational command instead of a query")
    p.add_argument("--respect-blocks", action="store_true", help="Skip edges the circuit breaker holds blocked")

    # IO
    p.add_argument("--json", action="store_true", help="Output result as JSON")
    p.add_argument("--waypoints", action="store_true", help="Include door/center/goal waypoints in the output")
    p.add_argument("--out", "--output", dest="out_path", type=str, default=None, help="Write output to file instead of stdout")

    # Options
    p.add_argument("--aggressive", action="store_true", help="Use the aggressive walkable mode (no height penalty)")
    p.add_argument("--no-expensive", dest="allow_expensive_checks", action="store_false", help="Disable hull probes")
    p.add_argument("--fine-grid", action="store_true", help="Build the fine point layer")
    p.add_argument(
        "--options-file",
        dest="options_file",
        type=str,
        default=None,
        help="Path to JSON object of NavOptions fields. Applied before --options-json.",
    )
    p.add_argument(
        "--options-json",
        dest="options_json",
        type=str,
        default=None,
        help="JSON object of NavOptions fields. Last-wins per key over --options-file.",
    )

    # Logging
    p.add_argument("--log-level", default="INFO", choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"], help="Logging level")

    p.set_defaults(allow_expensive_checks=True)
    return p


def _options_from_args(args: argparse.Namespace) -> NavOptions:
    opts = NavOptions()

    payload: Dict[str, Any] = {}
    if getattr(args, "options_file", None):
        try:
            text = Path(args.options_file).read_text(encoding="utf-8")
        except Exception as exc:  # noqa: BLE001
            raise ValueError(f"Failed to read --options-file: {args.options_file!r}: {exc}") from exc
        try:
            loaded: Any = json.loads(text)
        except Exception as exc:  # noqa: BLE001
            raise ValueError(f"Invalid JSON in --options-file {args.options_file!r}: {exc}") from exc
        _merge_options_payload(payload, loaded, source=f"--options-file {args.options_file}")

    if getattr(args, "options_json", None):
        try:
            loaded = json.loads(args.options_json)
        except Exception as exc:  # noqa: BLE001
            raise ValueError(f"Invalid JSON in --options-json: {exc}") from exc
        _merge_options_payload(payload, loaded, source="--options-json")

    if args.aggressive:
        payload["walkable_mode"] = "aggressive"
    if not args.allow_expensive_checks:
        payload["allow_expensive_checks"] = False
    if args.fine_grid:
        payload["fine_grid"] = True

    opts.update(payload)
    return opts


def _merge_options_payload(target: Dict[str, Any], payload: Any, *, source: str) -> None:
    """Validate and merge an options JSON payload into ``target``.

    payload must be an object of NavOptions field names. Raises ValueError
    on invalid structure, unknown keys or mistyped values.
    """

    if not isinstance(payload, dict):
        raise ValueError(f"{source} must be a JSON object; got {type(payload).__name__}")
    try:
        NavOptions().update(payload)
    except ValueError as exc:
        raise ValueError(f"{source}: {exc}") from exc
    target.update(payload)


def _format_human(result: PathResult, nav: Navigator, with_waypoints: bool) -> str:
    path_len = len(result.path) if result.path is not None else 0
    lines = [
        f"reason: {result.reason}",
        f"expanded: {result.expanded}",
        f"path_len: {path_len}",
        f"total_cost: {result.cost:.1f}",
    ]
    if result.path is not None:
        lines.append("path:")
        for area_id in result.path:
            lines.append(f"  - {area_id}")
    if with_waypoints and nav.follower.waypoints:
        lines.append("waypoints:")
        for wp in nav.follower.waypoints:
            x, y, z = wp.pos
            lines.append(f"  - {wp.kind} [{x:.1f}, {y:.1f}, {z:.1f}] area={wp.area_id}")
    return "\n".join(lines) + "\n"


def _format_json(result: PathResult, nav: Navigator, with_waypoints: bool) -> str:
    payload = result.to_json_dict()
    if with_waypoints:
        payload["waypoints"] = [wp.to_json_dict() for wp in nav.follower.waypoints]
    return json.dumps(payload, indent=2) + "\n"


def _emit(text: str, out_path: Optional[str]) -> None:
    if out_path:
        out_file = Path(out_path)
        out_file.parent.mkdir(parents=True, exist_ok=True)
        out_file.write_text(text, encoding="utf-8")
    else:
        print(text, end="")


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level))

    if args.command is None and (args.start is None or args.goal is None):
        print("Error: --start and --goal are required unless --command is given", file=sys.stderr)
        return 2

    try:
        options = _options_from_args(args)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    nav = Navigator(options=options)
    try:
        nav.load_file(args.nav)
    except (MissingFileError, FormatError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    nav.process_all()

    if args.command is not None:
        _emit(execute(nav, args.command) + "\n", args.out_path)
        return 0

    result = nav.plan(args.start, args.goal) if args.respect_blocks else nav.find_path_between(args.start, args.goal)
    if result.path is not None and not args.respect_blocks:
        nav.set_path(result.path, args.goal)

    if args.json:
        out_text = _format_json(result, nav, args.waypoints)
    else:
        out_text = _format_human(result, nav, args.waypoints)
    _emit(out_text, args.out_path)

    # Exit code 0 if path found or properly reported; non-zero only on load/parse errors
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
