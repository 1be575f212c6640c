"""
Performance estimation for workflow graphs.

`estimate` turns a graph snapshot and the issues found in it into a synthetic
`PerformanceMetrics` record:

- estimated_execution_time_ms: per-kind base costs, plus a fixed overhead per
  edge, plus a per-severity penalty for issues in `penalized_categories`
  (fan-in and hub by default)
- estimated_memory_mb: memory_mb_per_node x nodes + memory_mb_per_edge x edges
- api_call_count: number of integration nodes
- data_volume_kb: data_volume_kb_per_node x nodes + data_volume_kb_per_edge x edges
- error_probability: base + weights for critical/high issues + orphan penalty,
  capped at max_error_probability
- redundant_operation_count: number of similar-nodes issues

Memory and data volume are order-of-magnitude placeholders, not measurements.
The function is deterministic: the same inputs always give identical values.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Iterable

from .config import AnalysisConfig
from .detectors import Issue
from .enums import IssueCategory, Severity
from .graph import Graph


@dataclass(frozen=True)
class PerformanceMetrics:
    """Synthetic cost estimate for one graph snapshot."""

    estimated_execution_time_ms: float
    estimated_memory_mb: float
    api_call_count: int
    data_volume_kb: float
    error_probability: float
    redundant_operation_count: int

    def to_dict(self) -> Dict[str, float]:
        return {
            "estimatedExecutionTimeMs": self.estimated_execution_time_ms,
            "estimatedMemoryMb": self.estimated_memory_mb,
            "apiCallCount": self.api_call_count,
            "dataVolumeKb": self.data_volume_kb,
            "errorProbability": self.error_probability,
            "redundantOperationCount": self.redundant_operation_count,
        }


def estimate(
    graph: Graph, issues: Iterable[Issue], config: AnalysisConfig | None = None
) -> PerformanceMetrics:
    """
    Estimate execution time, memory, API calls and error probability.

    Args:
        graph: Snapshot that was analyzed
        issues: Issues detected in that snapshot
        config: Cost tables and weights; defaults to `AnalysisConfig()`

    Returns:
        PerformanceMetrics for the snapshot
    """
    config = config or AnalysisConfig()
    issues = list(issues)
    node_count = len(graph.nodes)
    edge_count = len(graph.edges)

    time_ms = sum(config.cost_for(n.kind) for n in graph.nodes.values())
    time_ms += config.edge_overhead_ms * edge_count
    time_ms += sum(
        config.penalty_for(i.severity)
        for i in issues
        if i.category in config.penalized_categories
    )

    critical = sum(1 for i in issues if i.severity == Severity.CRITICAL)
    high = sum(1 for i in issues if i.severity == Severity.HIGH)
    has_orphan = any(i.category == IssueCategory.ORPHAN for i in issues)
    error_probability = (
        config.base_error_probability
        + config.critical_error_weight * critical
        + config.high_error_weight * high
        + (config.orphan_error_penalty if has_orphan else 0.0)
    )

    return PerformanceMetrics(
        estimated_execution_time_ms=float(time_ms),
        estimated_memory_mb=float(
            config.memory_mb_per_node * node_count + config.memory_mb_per_edge * edge_count
        ),
        api_call_count=sum(1 for n in graph.nodes.values() if n.is_integration),
        data_volume_kb=float(
            config.data_volume_kb_per_node * node_count
            + config.data_volume_kb_per_edge * edge_count
        ),
        error_probability=min(config.max_error_probability, error_probability),
        redundant_operation_count=sum(
            1 for i in issues if i.category == IssueCategory.SIMILAR_NODES
        ),
    )


def improvement_percentages(
    before: PerformanceMetrics, after: PerformanceMetrics
) -> Dict[str, float]:
    """
    Percentage reduction of each metric from `before` to `after`.

    A metric that was already zero reports 0.0 rather than dividing by zero.
    """
    out = {}
    b, a = asdict(before), asdict(after)
    for name, old in b.items():
        out[name] = (old - a[name]) / old * 100.0 if old else 0.0
    return out
