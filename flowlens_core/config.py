"""
Configuration objects for the FlowLens analysis core.

Every heuristic the detectors, the estimator and the optimizer rely on lives in
`AnalysisConfig`: detection thresholds, the per-kind cost table, issue penalties
and the fixed improvement ratios of the simulated optimization. Defaults match
the documented boundary values, so an unconfigured run is reproducible.

The time, memory and data-volume figures are order-of-magnitude placeholders,
not measurements.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, FrozenSet, Mapping

import yaml

from .enums import IssueCategory, NodeKind, Severity

logger = logging.getLogger(__name__)


def _default_base_costs() -> Dict[NodeKind, float]:
    return {
        NodeKind.TRIGGER: 50.0,
        NodeKind.ACTION: 100.0,
        NodeKind.CONDITION: 20.0,
        NodeKind.DATA: 30.0,
        NodeKind.INTEGRATION: 500.0,
        NodeKind.AGENT: 300.0,
    }


def _default_issue_penalties() -> Dict[Severity, float]:
    return {
        Severity.HIGH: 150.0,
        Severity.CRITICAL: 300.0,
    }


def _coerce_scalar(key: str, value: Any, default: Any) -> Any:
    """Convert a raw config value to the type of the field default."""
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ValueError(f"{key} must be true or false, got {value!r}")
        return value
    if isinstance(value, bool):
        raise ValueError(f"{key} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be a number, got {value!r}") from None
    if isinstance(default, int):
        if not number.is_integer():
            raise ValueError(f"{key} must be an integer, got {value!r}")
        return int(number)
    return number


@dataclass
class AnalysisConfig:
    """
    Tunable parameters for detection, estimation and optimization.

    Thresholds are strict: an issue fires when a count *exceeds* the value.
    """

    # Fan-in / hub scanner
    fan_in_threshold: int = 2
    fan_in_high_threshold: int = 4
    hub_out_threshold: int = 2

    # External-call scanner
    rate_limit_threshold: int = 3
    rate_limit_critical_threshold: int = 5

    # Similarity scanner: labels are similar when distance < this value
    similarity_max_distance: int = 5

    # Long-chain scanner (path length in nodes)
    long_chain_threshold: int = 10
    long_chain_high_threshold: int = 15

    # Memory-intensive scanner
    memory_intensive_kinds: FrozenSet[NodeKind] = frozenset(
        {NodeKind.TRANSFORM, NodeKind.AGGREGATE, NodeKind.FILTER}
    )
    memory_intensive_threshold: int = 4

    # Execution time estimate
    base_cost_ms: Dict[NodeKind, float] = field(default_factory=_default_base_costs)
    default_cost_ms: float = 100.0
    edge_overhead_ms: float = 10.0
    issue_penalty_ms: Dict[Severity, float] = field(
        default_factory=_default_issue_penalties
    )
    default_issue_penalty_ms: float = 50.0
    # Only issues in these categories add a time penalty
    penalized_categories: FrozenSet[IssueCategory] = frozenset(
        {IssueCategory.FAN_IN, IssueCategory.HUB}
    )

    # Memory and data volume placeholders
    memory_mb_per_node: float = 5.0
    memory_mb_per_edge: float = 2.0
    data_volume_kb_per_node: float = 2.0
    data_volume_kb_per_edge: float = 1.0

    # Error probability
    base_error_probability: float = 0.01
    critical_error_weight: float = 0.2
    high_error_weight: float = 0.1
    orphan_error_penalty: float = 0.2
    max_error_probability: float = 0.99

    # Simulated optimization ratios and floors
    time_ratio: float = 0.7
    time_floor_ms: float = 50.0
    memory_ratio: float = 0.8
    memory_floor_mb: float = 5.0
    api_call_ratio: float = 0.6
    api_call_floor: int = 1
    error_ratio: float = 0.5
    error_floor: float = 0.01

    # Connection validation policies
    allow_number_to_string: bool = False
    reject_duplicate_connections: bool = False

    def cost_for(self, kind: NodeKind) -> float:
        """Return the base execution cost in milliseconds for a node kind."""
        return self.base_cost_ms.get(kind, self.default_cost_ms)

    def penalty_for(self, severity: Severity) -> float:
        """Return the time penalty in milliseconds for an issue severity."""
        return self.issue_penalty_ms.get(severity, self.default_issue_penalty_ms)

    def validate(self) -> None:
        """
        Check that the configured values are usable.

        Raises:
            ValueError: If a threshold is negative, a high threshold is below its
                base threshold, or a ratio is outside (0, 1].
        """
        for name in (
            "fan_in_threshold",
            "fan_in_high_threshold",
            "hub_out_threshold",
            "rate_limit_threshold",
            "rate_limit_critical_threshold",
            "similarity_max_distance",
            "long_chain_threshold",
            "long_chain_high_threshold",
            "memory_intensive_threshold",
            "api_call_floor",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")

        for low, high in (
            ("fan_in_threshold", "fan_in_high_threshold"),
            ("rate_limit_threshold", "rate_limit_critical_threshold"),
            ("long_chain_threshold", "long_chain_high_threshold"),
        ):
            if getattr(self, high) < getattr(self, low):
                raise ValueError(f"{high} must not be lower than {low}")

        for name in ("time_ratio", "memory_ratio", "api_call_ratio", "error_ratio"):
            value = getattr(self, name)
            if not (0.0 < value <= 1.0):
                raise ValueError(f"{name} must be in (0, 1], got {value}")

        if not (0.0 <= self.base_error_probability <= self.max_error_probability <= 1.0):
            raise ValueError(
                "error probabilities must satisfy 0 <= base <= max <= 1"
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "AnalysisConfig":
        """
        Build a config from a plain mapping, e.g. parsed YAML.

        Keys naming node kinds, severities and issue categories may be given as
        strings. Unknown keys are ignored with a warning.

        Raises:
            ValueError: If a value has the wrong type or fails `validate()`.
        """
        cfg = cls()
        known = {f.name for f in fields(cls)}
        for key, value in (data or {}).items():
            if key not in known:
                logger.warning("Ignoring unknown config key %r", key)
                continue
            if key == "base_cost_ms":
                costs = dict(cfg.base_cost_ms)
                costs.update({NodeKind.parse(k): float(v) for k, v in value.items()})
                value = costs
            elif key == "issue_penalty_ms":
                penalties = dict(cfg.issue_penalty_ms)
                penalties.update({Severity(k): float(v) for k, v in value.items()})
                value = penalties
            elif key == "memory_intensive_kinds":
                value = frozenset(NodeKind.parse(k) for k in value)
            elif key == "penalized_categories":
                value = frozenset(IssueCategory(c) for c in value)
            else:
                value = _coerce_scalar(key, value, getattr(cfg, key))
            setattr(cfg, key, value)
        cfg.validate()
        return cfg


def load_config(path: str) -> AnalysisConfig:
    """Load an `AnalysisConfig` from a YAML (or JSON) file."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    logger.info("Loaded analysis config from %s", path)
    return AnalysisConfig.from_dict(data)
