#!/usr/bin/env python3
"""
FlowLens CLI

Usage modes:
- Default run: load a workflow snapshot, analyze it, print or write the report
- Validation: re-check every existing connection, print per-edge results
- Stats: node/edge counts, components, roots and content hash
- Export: write GraphML for external tools
- Utility: list sample workflows, show version
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from glob import glob
from pathlib import Path
from typing import Any, Dict, List

from flowlens_core.analysis import analyze_and_optimize
from flowlens_core.compiler import compile_from_file
from flowlens_core.config import AnalysisConfig, load_config
from flowlens_core.graph import CycleError, Graph
from flowlens_core.validator import validate_all


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Analyze a workflow snapshot and report issues and estimated performance",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Utilities / meta
    p.add_argument("--version", action="store_true", help="Print version and exit")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v, -vv)")
    p.add_argument("--list-samples", action="store_true", help="List bundled sample workflows and exit")

    # Primary input
    p.add_argument("workflow", nargs="?", help="Path to a YAML or JSON workflow snapshot")
    p.add_argument("--config", type=str, default="", help="YAML file overriding analysis thresholds")

    # Analysis
    p.add_argument("--on-cycle", choices=["raise", "report"], default="raise", help="How to handle cyclic workflows")
    p.add_argument("--include-graph", action="store_true", help="Include the optimized graph in the report")
    p.add_argument("--strict", action="store_true", help="Exit 1 on critical issues or rejected connections")
    p.add_argument("--out", type=str, default="", help="Optional output JSON file path")

    # Inspection / export
    p.add_argument("--validate", action="store_true", help="Validate every existing connection")
    p.add_argument("--stats", action="store_true", help="Print graph statistics")
    p.add_argument("--export-graphml", type=str, default="", help="Export the workflow to GraphML at given path")

    return p.parse_args(argv)


def setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def find_sample_workflows() -> List[str]:
    here = Path(__file__).resolve()
    candidates = sorted(glob(str(here.parent / "*.yaml"))) + sorted(glob(str(here.parent / "*.json")))
    return candidates


def graph_stats(g: Graph) -> Dict[str, Any]:
    components = g.connected_components()
    kinds: Dict[str, int] = {}
    for n in g.nodes.values():
        kinds[n.kind.value] = kinds.get(n.kind.value, 0) + 1
    return {
        "nodes": len(g.nodes),
        "edges": len(g.edges),
        "kinds": kinds,
        "roots": g.roots(),
        "components": len(components),
        "acyclic": not g.has_cycle(),
        "hash": g.content_hash(),
    }


def _emit(payload: Dict[str, Any], out_path: str) -> None:
    if out_path:
        with open(out_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
    else:
        print(json.dumps(payload, indent=2))


def main(argv: List[str] | None = None) -> int:
    from flowlens_core import __version__ as flowlens_version

    args = parse_args(argv)
    setup_logging(args.verbose)

    if args.version:
        print(flowlens_version)
        return 0

    if args.list_samples:
        print(json.dumps(find_sample_workflows(), indent=2))
        return 0

    if not args.workflow:
        print("error: missing workflow path (try --list-samples)", file=sys.stderr)
        return 2

    try:
        cfg = load_config(args.config) if args.config else AnalysisConfig()
        logging.info("Loading workflow from %s", args.workflow)
        g = compile_from_file(args.workflow)
    except (OSError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if args.export_graphml:
        logging.info("Exporting GraphML to %s", args.export_graphml)
        try:
            g.export_graphml(args.export_graphml)
        except (ImportError, OSError) as e:
            print(f"error: cannot export GraphML: {e}", file=sys.stderr)
            return 2

    if args.stats:
        _emit(graph_stats(g), args.out)
        return 0

    if args.validate:
        results = validate_all(g, cfg)
        rejected = [eid for eid, r in results.items() if not r.ok]
        logging.info("Connections checked: %d (rejected=%d)", len(results), len(rejected))
        _emit({"rejected": rejected, "results": {eid: r.to_dict() for eid, r in results.items()}}, args.out)
        return 1 if args.strict and rejected else 0

    try:
        report = analyze_and_optimize(g, cfg, on_cycle=args.on_cycle)
    except CycleError as e:
        print(f"error: {e} (use --on-cycle report to continue)", file=sys.stderr)
        return 2

    logging.info(
        "Issues found: %d (highest severity: %s)",
        len(report.issues),
        report.highest_severity.value if report.highest_severity else "none",
    )
    for text in report.distinct_descriptions:
        logging.info("Optimization: %s", text)
    _emit(report.to_dict(include_graph=args.include_graph), args.out)
    return 1 if args.strict and report.has_critical else 0


if __name__ == "__main__":
    raise SystemExit(main())
