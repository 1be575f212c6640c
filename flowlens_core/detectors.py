"""
Issue detection for workflow graphs.

`detect` runs a fixed pipeline of independent scanners over a graph snapshot.
Each scanner is a plain function `(graph, config) -> List[Issue]` and can be
called on its own; `SCANNERS` lists them in the order `detect` runs them:

- fan-in / hub: nodes with too many incoming (and outgoing) edges
- external calls: integration nodes, and rate-limit risk when there are many
- orphans: nodes with no edges at all
- similar nodes: same-kind nodes with near-identical labels
- long chains: deep sequential paths (requires an acyclic graph)
- memory: many data-reshaping nodes

A node can carry both a fan-in and a hub issue; the two are not exclusive.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Tuple

from .config import AnalysisConfig
from .enums import IssueCategory, Severity
from .graph import CycleError, Graph

logger = logging.getLogger(__name__)


SUGGESTIONS: Dict[IssueCategory, str] = {
    IssueCategory.FAN_IN: "Use batch processing or a queue to merge incoming data before this step",
    IssueCategory.HUB: "Split this node into smaller steps to spread the load",
    IssueCategory.ORPHAN: "Connect this node to the workflow or remove it",
    IssueCategory.SIMILAR_NODES: "Combine these steps into a single node",
    IssueCategory.EXTERNAL_CALL: "Add response caching and retry logic to this integration",
    IssueCategory.RATE_LIMIT: "Implement rate limiting and batch requests to avoid API throttling",
    IssueCategory.LONG_CHAIN: "Run independent steps in parallel or break the workflow into sub-workflows",
    IssueCategory.MEMORY_INTENSIVE: "Combine sequential data transformations and process large data sets in pages",
}


@dataclass(frozen=True)
class Issue:
    """
    A structural or performance concern found in a graph.

    Attributes:
        id: Deterministic identifier derived from category and nodes
        category: What kind of concern this is
        severity: How serious it is
        affected_node_ids: Nodes involved, without duplicates
        affected_edge_ids: Edges involved, without duplicates
        message: Human-readable description
        suggestion: Recommended fix
    """

    id: str
    category: IssueCategory
    severity: Severity
    affected_node_ids: Tuple[str, ...] = ()
    affected_edge_ids: Tuple[str, ...] = ()
    message: str = ""
    suggestion: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category.value,
            "severity": self.severity.value,
            "affectedNodeIds": list(self.affected_node_ids),
            "affectedEdgeIds": list(self.affected_edge_ids),
            "message": self.message,
            "suggestion": self.suggestion,
        }


def _issue(
    issue_id: str,
    category: IssueCategory,
    severity: Severity,
    node_ids=(),
    edge_ids=(),
    message: str = "",
) -> Issue:
    return Issue(
        id=issue_id,
        category=category,
        severity=severity,
        affected_node_ids=tuple(dict.fromkeys(node_ids)),
        affected_edge_ids=tuple(dict.fromkeys(edge_ids)),
        message=message,
        suggestion=SUGGESTIONS[category],
    )


def levenshtein(a: str, b: str) -> int:
    """
    Edit distance between two strings.

    Insertion, deletion and substitution each cost 1. Uses two rolling rows of
    the classic dynamic-programming table.
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + (ca != cb),  # substitution
                )
            )
        previous = current
    return previous[-1]


def labels_similar(a: str, b: str, max_distance: int = 5) -> bool:
    """Case-insensitive: one label contains the other, or distance < max_distance."""
    a, b = a.lower(), b.lower()
    return a in b or b in a or levenshtein(a, b) < max_distance


# ----- scanners -----
def scan_fan_in(graph: Graph, config: AnalysisConfig) -> List[Issue]:
    """Flag nodes with many incoming edges, and hubs that also fan out."""
    issues = []
    for node_id, node in graph.nodes.items():
        incoming = graph.incoming(node_id)
        outgoing = graph.outgoing(node_id)
        in_deg, out_deg = len(incoming), len(outgoing)
        if in_deg <= config.fan_in_threshold:
            continue

        severity = (
            Severity.HIGH if in_deg > config.fan_in_high_threshold else Severity.MEDIUM
        )
        issues.append(
            _issue(
                f"fan-in-{node_id}",
                IssueCategory.FAN_IN,
                severity,
                [node_id],
                [e.id for e in incoming],
                f"'{node.label}' receives {in_deg} connections and may become a bottleneck",
            )
        )
        if out_deg > config.hub_out_threshold:
            issues.append(
                _issue(
                    f"hub-{node_id}",
                    IssueCategory.HUB,
                    Severity.HIGH,
                    [node_id],
                    [e.id for e in incoming + outgoing],
                    f"'{node.label}' is a hub with {in_deg} incoming and {out_deg} outgoing connections",
                )
            )
    return issues


def scan_external_calls(graph: Graph, config: AnalysisConfig) -> List[Issue]:
    """Flag every integration node, plus a rate-limit risk when there are many."""
    integrations = [n for n in graph.nodes.values() if n.is_integration]
    issues = []
    if len(integrations) > config.rate_limit_threshold:
        severity = (
            Severity.CRITICAL
            if len(integrations) > config.rate_limit_critical_threshold
            else Severity.HIGH
        )
        issues.append(
            _issue(
                "rate-limit",
                IssueCategory.RATE_LIMIT,
                severity,
                [n.id for n in integrations],
                message=f"{len(integrations)} external API calls may hit rate limits",
            )
        )
    for n in integrations:
        issues.append(
            _issue(
                f"external-call-{n.id}",
                IssueCategory.EXTERNAL_CALL,
                Severity.LOW,
                [n.id],
                message=f"'{n.label}' calls an external service",
            )
        )
    return issues


def scan_orphans(graph: Graph, config: AnalysisConfig) -> List[Issue]:
    """Flag nodes with neither incoming nor outgoing edges."""
    return [
        _issue(
            f"orphan-{node_id}",
            IssueCategory.ORPHAN,
            Severity.HIGH,
            [node_id],
            message=f"'{node.label}' is not connected to the workflow",
        )
        for node_id, node in graph.nodes.items()
        if graph.in_degree(node_id) == 0 and graph.out_degree(node_id) == 0
    ]


def scan_similar_nodes(graph: Graph, config: AnalysisConfig) -> List[Issue]:
    """Flag every pair of same-kind nodes whose labels look alike."""
    groups: Dict[Any, list] = {}
    for n in graph.nodes.values():
        groups.setdefault(n.kind, []).append(n)

    issues = []
    for members in groups.values():
        for i, a in enumerate(members):
            for b in members[i + 1:]:
                if not labels_similar(a.label, b.label, config.similarity_max_distance):
                    continue
                issues.append(
                    _issue(
                        f"similar-nodes-{a.id}-{b.id}",
                        IssueCategory.SIMILAR_NODES,
                        Severity.MEDIUM,
                        [a.id, b.id],
                        message=f"'{a.label}' and '{b.label}' look like the same step",
                    )
                )
    return issues


def longest_path(graph: Graph) -> List[str]:
    """
    Return the longest path (by node count) starting at a node with no inputs.

    Computed over a topological order, so every node is visited once.

    Raises:
        CycleError: If the graph contains a cycle
    """
    order = graph.topological_order()
    length: Dict[str, int] = {}
    previous: Dict[str, str] = {}
    for node_id in order:
        best = 0
        for e in graph.in_edges[node_id]:
            if length[e.source] > best:
                best = length[e.source]
                previous[node_id] = e.source
        length[node_id] = best + 1

    if not length:
        return []
    # Earliest node in insertion order wins ties
    end = max(graph.nodes, key=lambda nid: length[nid])
    path = [end]
    while path[-1] in previous:
        path.append(previous[path[-1]])
    path.reverse()
    return path


def scan_long_chains(graph: Graph, config: AnalysisConfig) -> List[Issue]:
    """
    Flag workflows whose longest sequential path is too deep.

    Raises:
        CycleError: If the graph contains a cycle
    """
    path = longest_path(graph)
    if len(path) <= config.long_chain_threshold:
        return []
    severity = (
        Severity.HIGH if len(path) > config.long_chain_high_threshold else Severity.MEDIUM
    )
    edge_ids = []
    for src, dst in zip(path, path[1:]):
        edge_ids.append(next(e.id for e in graph.out_edges[src] if e.target == dst))
    return [
        _issue(
            "long-chain",
            IssueCategory.LONG_CHAIN,
            severity,
            path,
            edge_ids,
            f"Longest sequential chain has {len(path)} steps",
        )
    ]


def scan_memory(graph: Graph, config: AnalysisConfig) -> List[Issue]:
    """Flag workflows with many transform/aggregate/filter steps."""
    heavy = [n.id for n in graph.nodes.values() if n.kind in config.memory_intensive_kinds]
    if len(heavy) <= config.memory_intensive_threshold:
        return []
    return [
        _issue(
            "memory-intensive",
            IssueCategory.MEMORY_INTENSIVE,
            Severity.MEDIUM,
            heavy,
            message=f"{len(heavy)} data-processing steps may use a lot of memory",
        )
    ]


Scanner = Callable[[Graph, AnalysisConfig], List[Issue]]

SCANNERS: Tuple[Scanner, ...] = (
    scan_fan_in,
    scan_external_calls,
    scan_orphans,
    scan_similar_nodes,
    scan_long_chains,
    scan_memory,
)


def _cycle_issue(err: CycleError) -> Issue:
    return Issue(
        id="long-chain-cycle",
        category=IssueCategory.LONG_CHAIN,
        severity=Severity.CRITICAL,
        affected_node_ids=tuple(err.node_ids),
        message=f"cycle detected among nodes: {', '.join(err.node_ids)}",
        suggestion="Remove the connection that loops back to an earlier step",
    )


def detect(
    graph: Graph, config: AnalysisConfig | None = None, on_cycle: str = "raise"
) -> List[Issue]:
    """
    Run every scanner over `graph` and return the combined issues.

    Args:
        graph: Snapshot to analyze; not modified
        config: Thresholds; defaults to `AnalysisConfig()`
        on_cycle: "raise" to propagate `CycleError` from the long-chain scan,
            "report" to return a critical long-chain issue describing the cycle

    Raises:
        CycleError: If the graph has a cycle and `on_cycle == "raise"`
        ValueError: If `on_cycle` is not one of the accepted values
    """
    if on_cycle not in ("raise", "report"):
        raise ValueError(f"on_cycle must be 'raise' or 'report', got {on_cycle!r}")
    config = config or AnalysisConfig()

    issues: List[Issue] = []
    for scanner in SCANNERS:
        try:
            found = scanner(graph, config)
        except CycleError as err:
            if on_cycle == "raise":
                raise
            logger.warning("Skipping %s: %s", scanner.__name__, err)
            found = [_cycle_issue(err)]
        logger.debug("%s found %d issue(s)", scanner.__name__, len(found))
        issues.extend(found)
    return issues
