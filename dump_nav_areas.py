#!/usr/bin/env python3
import argparse

from areanav.graph import AreaGraph
from areanav.mesh import Direction
from areanav.navfile import load_nav


def fetch_areas(nav_path: str, area_id: int=None):
    mesh = load_nav(nav_path)
    graph = AreaGraph.from_navmesh(mesh)
    if area_id is None:
        areas = list(graph)
    else:
        area = graph.get(area_id)
        if area is None:
            raise SystemExit(f"Area {area_id} not found.")
        areas = [area]
    return areas


def emit_block(area):
    lines = [f"area_id={area.id} flags={area.flags}"]
    for name, corner in zip(("nw", "ne", "se", "sw"), area.corners):
        lines.append(f"  {name}: ({corner[0]:.1f}, {corner[1]:.1f}, {corner[2]:.1f})")
    cx, cy, cz = area.center
    lines.append(f"  center: ({cx:.1f}, {cy:.1f}, {cz:.1f})")
    counts = " ".join(f"{d.name.lower()}={len(area.connections[d])}" for d in Direction)
    lines.append(f"  connections: {counts}")
    lines.append(f"  footprint: {area.footprint().wkt}")
    for line in lines:
        print(line)
    return lines


if __name__ == "__main__":
    ap = argparse.ArgumentParser(description="Dump navigation areas from a .nav file.")
    ap.add_argument("--nav", required=True, help="Path to the .nav file")
    ap.add_argument("--area-id", type=int, required=False, help="Area ID to inspect")
    ap.add_argument("--out", help="Optional path to write the dumped blocks")
    args = ap.parse_args()
    entries = fetch_areas(args.nav, args.area_id)
    all_blocks = []
    for idx, area in enumerate(entries):
        if idx > 0:
            print("")
        block_lines = emit_block(area)
        all_blocks.append("\n".join(block_lines))
    if args.out:
        with open(args.out, "w", encoding="utf-8") as fh:
            fh.write("\n\n".join(all_blocks))
            fh.write("\n")
