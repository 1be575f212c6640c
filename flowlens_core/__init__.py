"""
FlowLens Core Package.

This package contains the workflow graph model and its heuristic analysis
engine, including:

- Core data structures (Graph, Node, Edge, Port)
- Connection validation for proposed edges
- Issue detectors (fan-in/hub, external calls, orphans, similar nodes,
  long chains, memory-intensive steps)
- Performance estimation and simulated optimization
- The combined analyze-and-optimize pipeline

All analysis functions are pure: they read a graph snapshot and return new
values without modifying it.
"""

# FlowLens Core Package

__version__ = "0.1.0"

from .enums import NodeKind, PortDirection, DataType, IssueCategory, Severity
from .config import AnalysisConfig, load_config
from .graph import Graph, Node, Edge, Port, CycleError
from .validator import ValidationResult, validate, validate_all
from .detectors import Issue, detect, levenshtein
from .metrics import PerformanceMetrics, estimate, improvement_percentages
from .optimizer import OptimizationResult, apply, unique_descriptions
from .analysis import Report, analyze_and_optimize, analyze_and_optimize_async
from .compiler import compile_from_dict, compile_from_yaml, compile_from_file
from .store import WorkflowStore
