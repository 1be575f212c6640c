"""
Connection validation for workflow graphs.

`validate` decides whether a proposed edge may be added to a graph. Rules run
in order and the first failure wins:

1. Both endpoints must exist.
2. The target must not be a trigger.
3. Port data types must match, or either side must be `any`. A handle that is
   set but does not resolve to a port of the expected direction counts as
   incompatible.
4. If the target port restricts its source kinds, the source kind must be one
   of them.
5. (optional) The proposed edge must not duplicate an existing connection.

Validation never mutates the graph and never raises for well-typed input;
callers insert accepted edges themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from .config import AnalysisConfig
from .enums import DataType, NodeKind, PortDirection
from .graph import Edge, Graph

UNKNOWN_ENDPOINT = "unknown endpoint"
TRIGGER_TARGET = "triggers cannot receive connections"
INCOMPATIBLE_TYPES = "incompatible data types"
KIND_NOT_PERMITTED = "source kind not permitted"
DUPLICATE_CONNECTION = "connection already exists"

NUMBER_TO_STRING_WARNING = "Number will be converted to string"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one connection. Truthy when accepted."""

    ok: bool
    reason: Optional[str] = None
    warning: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok

    def to_dict(self) -> Dict[str, object]:
        out: Dict[str, object] = {"ok": self.ok}
        if self.reason is not None:
            out["reason"] = self.reason
        if self.warning is not None:
            out["warning"] = self.warning
        return out


def _reject(reason: str) -> ValidationResult:
    return ValidationResult(ok=False, reason=reason)


def _types_compatible(
    source_type: DataType, target_type: DataType, config: AnalysisConfig
) -> ValidationResult:
    if DataType.ANY in (source_type, target_type) or source_type == target_type:
        return ValidationResult(ok=True)
    if (
        config.allow_number_to_string
        and source_type == DataType.NUMBER
        and target_type == DataType.STRING
    ):
        return ValidationResult(ok=True, warning=NUMBER_TO_STRING_WARNING)
    return _reject(INCOMPATIBLE_TYPES)


def validate(
    graph: Graph, edge: Edge, config: AnalysisConfig | None = None
) -> ValidationResult:
    """
    Decide whether `edge` may be added to `graph`.

    Args:
        graph: Snapshot the edge would be added to
        edge: Proposed connection
        config: Validation policies; defaults to `AnalysisConfig()`

    Returns:
        ValidationResult with `ok` set, or the reason of the first failed rule
    """
    config = config or AnalysisConfig()

    source = graph.nodes.get(edge.source)
    target = graph.nodes.get(edge.target)
    if source is None or target is None:
        return _reject(UNKNOWN_ENDPOINT)

    if target.kind == NodeKind.TRIGGER:
        return _reject(TRIGGER_TARGET)

    source_port = source.port(edge.source_handle, PortDirection.OUTPUT)
    target_port = target.port(edge.target_handle, PortDirection.INPUT)
    if (edge.source_handle is not None and source_port is None) or (
        edge.target_handle is not None and target_port is None
    ):
        return _reject(INCOMPATIBLE_TYPES)

    warning = None
    if source_port is not None and target_port is not None:
        compat = _types_compatible(source_port.data_type, target_port.data_type, config)
        if not compat.ok:
            return compat
        warning = compat.warning

    if target_port is not None and target_port.allowed_source_kinds:
        if source.kind not in target_port.allowed_source_kinds:
            return _reject(KIND_NOT_PERMITTED)

    if config.reject_duplicate_connections and any(
        edge.same_connection(existing) for existing in graph.outgoing(edge.source)
    ):
        return _reject(DUPLICATE_CONNECTION)

    return ValidationResult(ok=True, warning=warning)


def validate_all(
    graph: Graph, config: AnalysisConfig | None = None
) -> Dict[str, ValidationResult]:
    """
    Re-check every existing edge against the connection rules.

    Each edge is validated against the graph without itself, so the duplicate
    rule does not reject an edge for matching its own entry.

    Returns:
        Mapping of edge id to its ValidationResult, in edge order
    """
    results: Dict[str, ValidationResult] = {}
    for e in graph.edges:
        results[e.id] = validate(graph.without_edge(e.id), e, config)
    return results
