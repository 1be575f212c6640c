"""
Graph data structures for FlowLens workflow analysis.

This module defines the snapshot representation of a workflow:
- Port: Typed attachment point on a node
- Node: One workflow step, tagged by its kind
- Edge: Directed connection between two nodes, optionally port-to-port
- Graph: Container for nodes and edges with read-only query helpers

Analysis functions never mutate a Graph. Methods that "change" a graph
(`with_edge`, `with_optimized`) return a new instance.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from .enums import DataType, NodeKind, PortDirection

try:
    import networkx as nx

    HAS_NETWORKX = True
except ImportError:
    HAS_NETWORKX = False


class CycleError(ValueError):
    """Raised when an analysis that requires an acyclic graph meets a cycle."""

    def __init__(self, node_ids: Iterable[str]):
        self.node_ids: List[str] = list(node_ids)
        super().__init__(
            f"cycle detected among nodes: {', '.join(self.node_ids)}"
        )


@dataclass(frozen=True)
class Port:
    """
    A typed attachment point on a node.

    Attributes:
        id: Port identifier, unique within its node
        direction: INPUT or OUTPUT
        data_type: Type of data carried through the port
        required: Whether the port must be connected for the node to run
        allowed_source_kinds: Node kinds allowed to feed this port (empty = any)
    """

    id: str
    direction: PortDirection
    data_type: DataType = DataType.ANY
    required: bool = False
    allowed_source_kinds: FrozenSet[NodeKind] = frozenset()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "direction": self.direction.value,
            "dataType": self.data_type.value,
            "required": self.required,
            "allowedSourceKinds": sorted(k.value for k in self.allowed_source_kinds),
        }


@dataclass(frozen=True)
class Node:
    """
    A workflow step.

    Attributes:
        id: Unique, stable identifier
        kind: Tag selecting how the node is treated by the analysis
        label: Display label (defaults to the id)
        ports: Typed attachment points
        config: Opaque step configuration, not interpreted by the core
        optimized: Set by the optimizer on nodes it touched
    """

    id: str
    kind: NodeKind
    label: str = ""
    ports: Tuple[Port, ...] = ()
    config: Dict[str, Any] = field(default_factory=dict)
    optimized: bool = False

    def __post_init__(self):
        if not self.label:
            object.__setattr__(self, "label", self.id)
        object.__setattr__(self, "ports", tuple(self.ports))

    @property
    def is_integration(self) -> bool:
        """True for integration nodes, including ones declared via config."""
        return (
            self.kind == NodeKind.INTEGRATION
            or self.config.get("nodeType") == NodeKind.INTEGRATION.value
        )

    def port(self, port_id: Optional[str], direction: PortDirection) -> Optional[Port]:
        """Return the port with this id and direction, or None."""
        if port_id is None:
            return None
        for p in self.ports:
            if p.id == port_id and p.direction == direction:
                return p
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "label": self.label,
            "ports": [p.to_dict() for p in self.ports],
            "config": dict(self.config),
            "optimized": self.optimized,
        }


@dataclass(frozen=True)
class Edge:
    """
    A directed connection between two nodes.

    Attributes:
        id: Unique identifier
        source: Source node id
        target: Target node id
        source_handle: Output port id on the source node, if port-to-port
        target_handle: Input port id on the target node, if port-to-port
    """

    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None

    def same_connection(self, other: "Edge") -> bool:
        """True if both edges join the same endpoints through the same handles."""
        return (
            self.source == other.source
            and self.target == other.target
            and self.source_handle == other.source_handle
            and self.target_handle == other.target_handle
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sourceNodeId": self.source,
            "targetNodeId": self.target,
            "sourceHandle": self.source_handle,
            "targetHandle": self.target_handle,
        }


class Graph:
    """
    Container for the nodes and edges of one workflow snapshot.

    Maintains forward (outgoing) and backward (incoming) edge mappings so the
    detectors can query degrees and neighbours without rescanning every edge.

    Attributes:
        nodes: Dictionary mapping node IDs to Node objects (insertion ordered)
        edges: Edges in insertion order
        out_edges: Dictionary mapping node IDs to lists of outgoing edges
        in_edges: Dictionary mapping node IDs to lists of incoming edges
    """

    def __init__(self, nodes: Iterable[Node] = (), edges: Iterable[Edge] = ()):
        self.nodes: Dict[str, Node] = {}
        self.edges: List[Edge] = []
        self.out_edges: Dict[str, List[Edge]] = {}
        self.in_edges: Dict[str, List[Edge]] = {}
        self._edge_ids: Set[str] = set()
        for n in nodes:
            self.add_node(n)
        for e in edges:
            self.add_edge(e)

    def __repr__(self) -> str:
        return f"Graph(nodes={len(self.nodes)}, edges={len(self.edges)})"

    # ----- construction -----
    def add_node(self, n: Node) -> None:
        """
        Add a node to the graph.

        Raises:
            ValueError: If a node with the same id already exists
        """
        if n.id in self.nodes:
            raise ValueError(f"Duplicate node id: {n.id}")
        self.nodes[n.id] = n
        self.out_edges.setdefault(n.id, [])
        self.in_edges.setdefault(n.id, [])

    def add_edge(self, e: Edge) -> None:
        """
        Add a directed edge between existing nodes.

        Raises:
            ValueError: If the edge id is taken, an endpoint is missing, or a
                handle does not name a port of the right direction
        """
        if e.id in self._edge_ids:
            raise ValueError(f"Duplicate edge id: {e.id}")
        if e.source not in self.nodes or e.target not in self.nodes:
            raise ValueError(
                f"Edge {e.id} references unknown node(s): {e.source} -> {e.target}"
            )
        if e.source_handle is not None and (
            self.nodes[e.source].port(e.source_handle, PortDirection.OUTPUT) is None
        ):
            raise ValueError(
                f"Edge {e.id}: '{e.source_handle}' is not an output port of {e.source}"
            )
        if e.target_handle is not None and (
            self.nodes[e.target].port(e.target_handle, PortDirection.INPUT) is None
        ):
            raise ValueError(
                f"Edge {e.id}: '{e.target_handle}' is not an input port of {e.target}"
            )
        self._edge_ids.add(e.id)
        self.edges.append(e)
        self.out_edges[e.source].append(e)
        self.in_edges[e.target].append(e)

    def copy(self) -> "Graph":
        """Return a shallow copy; nodes and edges are immutable and shared."""
        return Graph(self.nodes.values(), self.edges)

    def with_edge(self, e: Edge) -> "Graph":
        """Return a new graph with one more edge."""
        g = self.copy()
        g.add_edge(e)
        return g

    def without_edge(self, edge_id: str) -> "Graph":
        """Return a new graph lacking the edge with this id (if present)."""
        return Graph(self.nodes.values(), [e for e in self.edges if e.id != edge_id])

    def with_optimized(self, node_ids: Iterable[str]) -> "Graph":
        """Return a new graph with `optimized=True` on the given nodes."""
        marked = set(node_ids)
        nodes = [
            replace(n, optimized=True) if n.id in marked else n
            for n in self.nodes.values()
        ]
        return Graph(nodes, self.edges)

    # ----- queries -----
    def incoming(self, node_id: str) -> List[Edge]:
        """Edges whose target is `node_id` (empty for unknown ids)."""
        return list(self.in_edges.get(node_id, []))

    def outgoing(self, node_id: str) -> List[Edge]:
        """Edges whose source is `node_id` (empty for unknown ids)."""
        return list(self.out_edges.get(node_id, []))

    def in_degree(self, node_id: str) -> int:
        return len(self.in_edges.get(node_id, []))

    def out_degree(self, node_id: str) -> int:
        return len(self.out_edges.get(node_id, []))

    def roots(self) -> List[str]:
        """IDs of nodes with no incoming edges, in insertion order."""
        return [nid for nid in self.nodes if not self.in_edges[nid]]

    def reachable_from(self, node_id: str) -> Set[str]:
        """
        Collect all nodes reachable from `node_id` by following edges forward.

        The start node is included. Cycles are safe: each node is expanded once.
        """
        if node_id not in self.nodes:
            return set()
        reachable = {node_id}
        stack = [node_id]
        while stack:
            current = stack.pop()
            for e in self.out_edges[current]:
                if e.target not in reachable:
                    reachable.add(e.target)
                    stack.append(e.target)
        return reachable

    def connected_components(self) -> List[List[str]]:
        """
        Find connected components, ignoring edge direction.

        Returns:
            List of sorted node-id lists, one per component, ordered by the
            first node of each component in insertion order
        """
        visited: Set[str] = set()
        components = []
        for start in self.nodes:
            if start in visited:
                continue
            component = []
            stack = [start]
            visited.add(start)
            while stack:
                current = stack.pop()
                component.append(current)
                for e in self.out_edges[current] + self.in_edges[current]:
                    neighbor = e.target if e.source == current else e.source
                    if neighbor not in visited:
                        visited.add(neighbor)
                        stack.append(neighbor)
            components.append(sorted(component))
        return components

    def topological_order(self) -> List[str]:
        """
        Order node ids so that every edge points forward (Kahn's algorithm).

        Raises:
            CycleError: If the graph has a cycle; `node_ids` lists the nodes
                that could not be ordered
        """
        remaining = {nid: len(self.in_edges[nid]) for nid in self.nodes}
        ready = [nid for nid, deg in remaining.items() if deg == 0]
        order: List[str] = []
        while ready:
            current = ready.pop(0)
            order.append(current)
            for e in self.out_edges[current]:
                remaining[e.target] -= 1
                if remaining[e.target] == 0:
                    ready.append(e.target)
        if len(order) != len(self.nodes):
            placed = set(order)
            raise CycleError(nid for nid in self.nodes if nid not in placed)
        return order

    def has_cycle(self) -> bool:
        try:
            self.topological_order()
        except CycleError:
            return True
        return False

    # ----- serialization -----
    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON-serializable snapshot `{"nodes": [...], "edges": [...]}`."""
        return {
            "nodes": [n.to_dict() for n in self.nodes.values()],
            "edges": [e.to_dict() for e in self.edges],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Graph":
        """Build a graph from a snapshot dict (see `compiler.compile_from_dict`)."""
        from .compiler import compile_from_dict

        return compile_from_dict(data)

    def content_hash(self) -> str:
        """SHA-256 of the canonical snapshot; equal graphs hash equally."""
        payload = json.dumps(self.to_dict(), sort_keys=True, default=str)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def to_networkx(self) -> "nx.MultiDiGraph":
        """
        Convert the workflow to a NetworkX MultiDiGraph for export/visualization.

        Raises:
            ImportError: If NetworkX is not available
        """
        if not HAS_NETWORKX:
            raise ImportError(
                "NetworkX is required for graph conversion. Install with: pip install networkx"
            )

        G = nx.MultiDiGraph()
        for node_id, n in self.nodes.items():
            G.add_node(
                node_id,
                kind=n.kind.value,
                label=n.label,
                optimized=n.optimized,
                ports=len(n.ports),
            )
        for e in self.edges:
            attrs = {"id": e.id}
            # GraphML has no null; omit unset handles
            if e.source_handle is not None:
                attrs["source_handle"] = e.source_handle
            if e.target_handle is not None:
                attrs["target_handle"] = e.target_handle
            G.add_edge(e.source, e.target, key=e.id, **attrs)
        return G

    def export_graphml(self, filepath: str) -> None:
        """
        Export the workflow to GraphML for external graph tools.

        Raises:
            ImportError: If NetworkX is not available
        """
        nx.write_graphml(self.to_networkx(), filepath)
