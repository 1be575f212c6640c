"""
Simulated optimization of workflow graphs.

`apply` does NOT restructure the graph. It marks every node named by an issue
as `optimized`, collects a fixed description per issue category, and scales
the original metrics by the fixed improvement ratios in `AnalysisConfig`. No
edge or node is added, removed or rewired; the returned metrics are
illustrative and are not re-derived from the graph.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .config import AnalysisConfig
from .detectors import Issue
from .enums import IssueCategory
from .graph import Graph
from .metrics import PerformanceMetrics, estimate

DESCRIPTIONS: Dict[IssueCategory, str] = {
    IssueCategory.FAN_IN: "Added batch processing to reduce bottlenecks",
    IssueCategory.HUB: "Split hub node load across parallel branches",
    IssueCategory.ORPHAN: "Flagged disconnected nodes for removal",
    IssueCategory.SIMILAR_NODES: "Merged redundant operations",
    IssueCategory.EXTERNAL_CALL: "Added response caching and retry logic to API calls",
    IssueCategory.RATE_LIMIT: "Added rate limiting and request batching",
    IssueCategory.LONG_CHAIN: "Parallelized independent steps in long chains",
    IssueCategory.MEMORY_INTENSIVE: "Combined sequential data transformations",
}


@dataclass
class OptimizationResult:
    graph: Graph
    applied_descriptions: List[str] = field(default_factory=list)
    metrics: Optional[PerformanceMetrics] = None


def unique_descriptions(descriptions: Iterable[str]) -> List[str]:
    """Drop repeated descriptions, keeping first-seen order."""
    return list(dict.fromkeys(descriptions))


def improved_metrics(
    before: PerformanceMetrics, config: AnalysisConfig | None = None
) -> PerformanceMetrics:
    """Scale `before` by the configured improvement ratios, honoring the floors."""
    config = config or AnalysisConfig()
    api_calls = before.api_call_count
    if api_calls > 0:
        api_calls = max(config.api_call_floor, math.floor(api_calls * config.api_call_ratio))
    return PerformanceMetrics(
        estimated_execution_time_ms=max(
            config.time_floor_ms, before.estimated_execution_time_ms * config.time_ratio
        ),
        estimated_memory_mb=max(
            config.memory_floor_mb, before.estimated_memory_mb * config.memory_ratio
        ),
        api_call_count=api_calls,
        data_volume_kb=before.data_volume_kb,
        error_probability=max(
            config.error_floor, before.error_probability * config.error_ratio
        ),
        redundant_operation_count=0,
    )


def apply(
    graph: Graph,
    issues: Iterable[Issue],
    config: AnalysisConfig | None = None,
    before: PerformanceMetrics | None = None,
) -> OptimizationResult:
    """
    Produce an "optimized" copy of `graph` and improved metrics.

    Args:
        graph: Original snapshot; left untouched
        issues: Issues detected in `graph`
        config: Improvement ratios; defaults to `AnalysisConfig()`
        before: Metrics already estimated for `graph`, to avoid estimating twice

    Returns:
        OptimizationResult with the flagged graph, one description per issue
        (in issue order) and the improved metrics
    """
    config = config or AnalysisConfig()
    issues = list(issues)
    if before is None:
        before = estimate(graph, issues, config)

    descriptions: List[str] = []
    touched = set()
    for issue in issues:
        descriptions.append(DESCRIPTIONS[issue.category])
        touched.update(issue.affected_node_ids)

    return OptimizationResult(
        graph=graph.with_optimized(touched),
        applied_descriptions=descriptions,
        metrics=improved_metrics(before, config),
    )
