"""
Snapshot loader for workflow graphs.

Builds a `Graph` from the JSON-serializable snapshot the editor sends, given as
a dict, YAML/JSON text, or a file path. Two node shapes are accepted:

Canonical:

nodes:
  - id: fetch
    kind: integration
    label: Fetch contacts
    ports:
      - {id: out, direction: output, dataType: array}
    config: {endpoint: https://api.example.com/contacts}
edges:
  - {id: e1, sourceNodeId: fetch, targetNodeId: filter, sourceHandle: out}

Editor (canvas) shape, where the step details live under `data`:

nodes:
  - id: node-1
    type: default
    data: {label: Get Contacts API, nodeType: api, configuration: {...}}
edges:
  - {id: edge-1-2, source: node-1, target: node-2}

Notes:
- The kind is taken from `kind`, then `data.nodeType`, then `data.type`, then
  `type`. Aliases such as `api` or `transformer` are resolved by
  `NodeKind.parse`; unrecognised kinds load as OTHER with a warning.
- Ports accept `direction` or the editor's `type` key, and `allowedSourceKinds`
  or the editor's `allowedConnections`.
- Edges without an id get `e-<source>-<target>-<index>`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import yaml

from .enums import DataType, NodeKind, PortDirection
from .graph import Edge, Graph, Node, Port

logger = logging.getLogger(__name__)


def _first(*values):
    for v in values:
        if v:
            return v
    return None


def _compile_port(raw: Dict[str, Any]) -> Port:
    direction = raw.get("direction") or raw.get("type")
    try:
        direction = PortDirection(str(direction).lower())
    except ValueError:
        raise ValueError(f"Port {raw.get('id')!r} has invalid direction {direction!r}")
    try:
        data_type = DataType(str(raw.get("dataType", "any")).lower())
    except ValueError:
        raise ValueError(
            f"Port {raw.get('id')!r} has invalid dataType {raw.get('dataType')!r}"
        )
    allowed = raw.get("allowedSourceKinds") or raw.get("allowedConnections") or []
    return Port(
        id=str(raw["id"]),
        direction=direction,
        data_type=data_type,
        required=bool(raw.get("required", False)),
        allowed_source_kinds=frozenset(NodeKind.parse(k) for k in allowed),
    )


def _compile_node(raw: Dict[str, Any]) -> Node:
    if not raw.get("id"):
        raise ValueError(f"Node without id: {raw!r}")
    data = raw.get("data") or {}
    raw_kind = _first(raw.get("kind"), data.get("nodeType"), data.get("type"), raw.get("type"))
    kind = NodeKind.parse(raw_kind)
    if kind == NodeKind.OTHER and raw_kind not in (None, "", NodeKind.OTHER.value):
        logger.warning("Node %s has unrecognised kind %r; treating as 'other'", raw["id"], raw_kind)

    config = dict(raw.get("config") or data.get("config") or data.get("configuration") or {})
    # Keep an explicit nodeType so config-declared integrations stay visible
    if data.get("nodeType") and "nodeType" not in config:
        config["nodeType"] = data["nodeType"]

    ports = raw.get("ports") or data.get("ports") or []
    return Node(
        id=str(raw["id"]),
        kind=kind,
        label=str(_first(raw.get("label"), data.get("label")) or ""),
        ports=tuple(_compile_port(p) for p in ports),
        config=config,
        optimized=bool(_first(raw.get("optimized"), data.get("optimized"))),
    )


def _compile_edge(raw: Dict[str, Any], index: int) -> Edge:
    source = _first(raw.get("sourceNodeId"), raw.get("source"))
    target = _first(raw.get("targetNodeId"), raw.get("target"))
    if not source or not target:
        raise ValueError(f"Edge {index} is missing a source or target: {raw!r}")
    return Edge(
        id=str(raw.get("id") or f"e-{source}-{target}-{index}"),
        source=str(source),
        target=str(target),
        source_handle=raw.get("sourceHandle"),
        target_handle=raw.get("targetHandle"),
    )


def compile_from_dict(raw: Dict[str, Any]) -> Graph:
    """
    Compile a snapshot dictionary into a `Graph`.

    Args:
        raw: Mapping with `nodes` and `edges` lists

    Returns:
        Graph: The compiled snapshot

    Raises:
        ValueError: If a node, port or edge is malformed or references
            something that does not exist
    """
    if not isinstance(raw, dict):
        raise ValueError("Snapshot must be a mapping with 'nodes' and 'edges'")
    nodes: List[Node] = [_compile_node(n) for n in raw.get("nodes", []) or []]
    edges: List[Edge] = [
        _compile_edge(e, i) for i, e in enumerate(raw.get("edges", []) or [])
    ]
    g = Graph(nodes, edges)
    logger.debug("Compiled %r", g)
    return g


def compile_from_yaml(yaml_text: str) -> Graph:
    """Compile from YAML (or JSON) text into a `Graph`."""
    data = yaml.safe_load(yaml_text) or {}
    return compile_from_dict(data)


def compile_from_file(path: str) -> Graph:
    """Compile from a YAML or JSON file path into a `Graph`."""
    with open(path, "r", encoding="utf-8") as f:
        txt = f.read()
    return compile_from_yaml(txt)
