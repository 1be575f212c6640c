"""
WorkflowStore: single owner of a live workflow graph.

The analysis functions never edit a graph in place. The store is the one place
that holds the current snapshot and swaps it for a new value: accepted
connections and optimization results replace the stored graph as a whole.
Nothing is persisted.
"""

from __future__ import annotations

from logging import getLogger
from typing import Optional, Tuple

from .analysis import Report, analyze_and_optimize
from .config import AnalysisConfig
from .graph import Edge, Graph, Node
from .validator import ValidationResult, validate

logger = getLogger(__name__)


class WorkflowStore:
    """Hold one Graph and apply whole-value replacements to it."""

    def __init__(self, graph: Optional[Graph] = None, config: Optional[AnalysisConfig] = None) -> None:
        self._graph = graph if graph is not None else Graph()
        self.config = config or AnalysisConfig()
        self._last_report: Optional[Tuple[str, Report]] = None

    @property
    def graph(self) -> Graph:
        """Current snapshot. Treat it as read-only."""
        return self._graph

    def replace(self, graph: Graph) -> None:
        """Swap in a new snapshot, e.g. `Report.graph` after optimization."""
        self._graph = graph
        logger.info(f"Workflow graph replaced: {graph!r}")

    def add_node(self, node: Node) -> None:
        """Add a node by replacing the snapshot with an extended copy."""
        g = self._graph.copy()
        g.add_node(node)
        self.replace(g)

    def connect(self, edge: Edge) -> ValidationResult:
        """
        Validate `edge` and, if accepted, add it to the stored graph.

        Returns:
            The ValidationResult; the graph is unchanged on rejection
        """
        result = validate(self._graph, edge, self.config)
        if result.ok:
            self.replace(self._graph.with_edge(edge))
        else:
            logger.info(f"Connection {edge.source} -> {edge.target} rejected: {result.reason}")
        return result

    def analyze(self, on_cycle: str = "raise") -> Report:
        """
        Analyze the current snapshot.

        Only the most recent report is kept. It is reused while the graph
        content, `on_cycle` and the config all stay the same.
        """
        key = f"{on_cycle}:{self.config!r}:{self._graph.content_hash()}"
        if self._last_report is not None and self._last_report[0] == key:
            return self._last_report[1]
        report = analyze_and_optimize(self._graph, self.config, on_cycle=on_cycle)
        self._last_report = (key, report)
        return report

    def apply_optimization(self, on_cycle: str = "raise") -> Report:
        """Analyze, then replace the stored graph with the optimized snapshot."""
        report = self.analyze(on_cycle=on_cycle)
        self.replace(report.graph)
        return report
