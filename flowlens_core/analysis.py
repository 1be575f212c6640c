"""
End-to-end analysis pipeline.

`analyze_and_optimize` sequences detection, estimation, simulated optimization
and a second estimation-derived metrics record into one `Report`. Every step is
a pure function of the input snapshot, so callers may memoize reports by
`Graph.content_hash()`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .config import AnalysisConfig
from .detectors import Issue, detect
from .enums import Severity
from .graph import Graph
from .metrics import PerformanceMetrics, estimate, improvement_percentages
from .optimizer import apply, unique_descriptions

logger = logging.getLogger(__name__)


@dataclass
class Report:
    """Result of one analysis request."""

    issues: List[Issue]
    before: PerformanceMetrics
    after: PerformanceMetrics
    applied_descriptions: List[str] = field(default_factory=list)
    graph: Graph | None = None
    """The optimized snapshot, for the caller to swap in as a whole."""

    def issues_by_severity(self) -> Dict[str, int]:
        counts = {s.value: 0 for s in Severity}
        for i in self.issues:
            counts[i.severity.value] += 1
        return counts

    @property
    def highest_severity(self) -> Severity | None:
        """Most severe issue level found, or None for a clean graph."""
        if not self.issues:
            return None
        return max((i.severity for i in self.issues), key=lambda s: s.rank)

    @property
    def has_critical(self) -> bool:
        return self.highest_severity == Severity.CRITICAL

    @property
    def distinct_descriptions(self) -> List[str]:
        return unique_descriptions(self.applied_descriptions)

    def to_dict(self, include_graph: bool = False) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "issues": [i.to_dict() for i in self.issues],
            "summary": self.issues_by_severity(),
            "before": self.before.to_dict(),
            "after": self.after.to_dict(),
            "improvements": improvement_percentages(self.before, self.after),
            "appliedDescriptions": list(self.applied_descriptions),
        }
        if include_graph and self.graph is not None:
            out["graph"] = self.graph.to_dict()
        return out


def analyze_and_optimize(
    graph: Graph, config: AnalysisConfig | None = None, on_cycle: str = "raise"
) -> Report:
    """
    Detect issues, estimate metrics, simulate optimization and report.

    Raises:
        CycleError: If the graph has a cycle and `on_cycle == "raise"`
    """
    config = config or AnalysisConfig()
    issues = detect(graph, config, on_cycle=on_cycle)
    before = estimate(graph, issues, config)
    result = apply(graph, issues, config, before=before)
    logger.debug(
        "Analyzed %r: %d issue(s), %.0fms -> %.0fms",
        graph,
        len(issues),
        before.estimated_execution_time_ms,
        result.metrics.estimated_execution_time_ms,
    )
    return Report(
        issues=issues,
        before=before,
        after=result.metrics,
        applied_descriptions=result.applied_descriptions,
        graph=result.graph,
    )


async def analyze_and_optimize_async(
    graph: Graph, config: AnalysisConfig | None = None, on_cycle: str = "raise"
) -> Report:
    """Run `analyze_and_optimize` on a worker thread for large graphs."""
    return await asyncio.to_thread(analyze_and_optimize, graph, config, on_cycle)
