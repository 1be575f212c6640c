"""
Core enumerations for the FlowLens workflow analysis system.

This module defines the tagged variants used throughout the package: the kinds
of workflow nodes, port directions and data types, and the categories and
severities of the issues reported by the detectors.
"""

from __future__ import annotations

from enum import Enum


class NodeKind(Enum):
    """
    Kinds of nodes in a workflow graph.

    The kind is the tag of a node: detectors and the estimator dispatch on it
    instead of inspecting the node's opaque configuration.
    """

    TRIGGER = "trigger"
    """Entry point of a workflow; never receives connections."""

    ACTION = "action"
    """Performs a side effect (send a message, update a record)."""

    CONDITION = "condition"
    """Branches the flow on a predicate."""

    TRANSFORM = "transform"
    """Reshapes data passing through the workflow."""

    INTEGRATION = "integration"
    """Calls an external service or API."""

    AGENT = "agent"
    """Delegates a step to an AI agent."""

    DATA = "data"
    """Reads or writes a data source."""

    AGGREGATE = "aggregate"
    """Combines many records into one."""

    FILTER = "filter"
    """Drops records that do not match a predicate."""

    OTHER = "other"
    """Any kind the editor emitted that is not recognised above."""

    @classmethod
    def parse(cls, value: "str | NodeKind | None") -> "NodeKind":
        """
        Resolve a kind from its string form, accepting the editor's aliases.

        Unknown or empty values resolve to OTHER.
        """
        if isinstance(value, NodeKind):
            return value
        if not value:
            return cls.OTHER
        key = str(value).strip().lower()
        key = _KIND_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return cls.OTHER


_KIND_ALIASES = {
    "api": "integration",
    "http": "integration",
    "webhook": "integration",
    "transformer": "transform",
    "aggregator": "aggregate",
    "branch": "condition",
    "ai": "agent",
}


class PortDirection(Enum):
    """Direction of a port relative to the node that owns it."""

    INPUT = "input"
    """Receives data from an upstream node."""

    OUTPUT = "output"
    """Emits data to downstream nodes."""


class DataType(Enum):
    """Data types a port can carry. ANY is compatible with every other type."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"
    DATE = "date"
    ANY = "any"


class IssueCategory(Enum):
    """
    Categories of issues reported by the detectors.

    - FAN_IN / HUB: bottlenecks around nodes with many connections
    - ORPHAN: nodes with no connections at all
    - SIMILAR_NODES: probable duplicates of the same step
    - EXTERNAL_CALL / RATE_LIMIT: integration-heavy workflows
    - LONG_CHAIN: deep sequential paths (also used to report cycles)
    - MEMORY_INTENSIVE: many data-reshaping steps
    """

    FAN_IN = "fan-in"
    HUB = "hub"
    ORPHAN = "orphan"
    SIMILAR_NODES = "similar-nodes"
    EXTERNAL_CALL = "external-call"
    RATE_LIMIT = "rate-limit"
    LONG_CHAIN = "long-chain"
    MEMORY_INTENSIVE = "memory-intensive"


class Severity(Enum):
    """Severity of a detected issue, ordered from least to most severe."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Position of this severity in ascending order (LOW == 0)."""
        return list(Severity).index(self)
