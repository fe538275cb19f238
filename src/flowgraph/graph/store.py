"""
In-memory directed multigraph of components.

Nodes are keyed by ComponentId; two adjacency indexes (outgoing by source,
incoming by target) hold the edge lists. The graph is not thread-safe: mutate
one instance from one thread, or build separate graphs and merge them.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any

from ..models import ComponentId, EdgeType, GraphEdge, GraphNode


class GraphStructureError(ValueError):
    """An edge was added before one of its endpoints."""


@dataclass
class GraphStats:
    node_count: int
    edge_count: int
    nodes_by_type: dict[str, int] = field(default_factory=dict)
    nodes_by_origin: dict[str, int] = field(default_factory=dict)
    edges_by_type: dict[str, int] = field(default_factory=dict)


@dataclass
class Graph:
    nodes: dict[ComponentId, GraphNode] = field(default_factory=dict)
    outgoing: dict[ComponentId, list[GraphEdge]] = field(default_factory=dict)
    incoming: dict[ComponentId, list[GraphEdge]] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    # --- nodes ---

    def add_node(self, node: GraphNode) -> GraphNode:
        """Insert or replace a node by id. The stored node owns a copy of the definition."""
        stored = replace(
            node,
            definition=copy.deepcopy(node.definition),
            metadata=copy.deepcopy(node.metadata),
        )
        self.nodes[stored.id] = stored
        self.outgoing.setdefault(stored.id, [])
        self.incoming.setdefault(stored.id, [])
        return stored

    def get_node(self, node_id: ComponentId) -> GraphNode | None:
        return self.nodes.get(node_id)

    def has_node(self, node_id: ComponentId) -> bool:
        return node_id in self.nodes

    def remove_node(self, node_id: ComponentId) -> bool:
        """Drop a node and its own adjacency lists.

        Edges held by neighbours keep pointing at the removed id; lookups that
        resolve edges to nodes skip them.
        """
        if node_id not in self.nodes:
            return False
        del self.nodes[node_id]
        self.outgoing.pop(node_id, None)
        self.incoming.pop(node_id, None)
        return True

    def all_nodes(self) -> list[GraphNode]:
        return list(self.nodes.values())

    def find_nodes_by_ref(self, domain: str, flow: str, key: str) -> list[GraphNode]:
        """All versions of one logical component."""
        prefix = f"{domain}/{flow}/{key}@".lower()
        return [n for node_id, n in self.nodes.items() if node_id.startswith(prefix)]

    # --- edges ---

    def add_edge(self, edge: GraphEdge) -> GraphEdge:
        if edge.source not in self.nodes:
            raise GraphStructureError(f"Cannot add edge {edge.id}: source node {edge.source} does not exist")
        if edge.target not in self.nodes:
            raise GraphStructureError(f"Cannot add edge {edge.id}: target node {edge.target} does not exist")
        self.outgoing.setdefault(edge.source, []).append(edge)
        self.incoming.setdefault(edge.target, []).append(edge)
        return edge

    def has_edge(self, source: ComponentId, target: ComponentId, edge_type: EdgeType | str) -> bool:
        edge_type = EdgeType(edge_type)
        return any(e.target == target and e.type == edge_type for e in self.outgoing.get(source, ()))

    def get_outgoing_edges(self, node_id: ComponentId) -> list[GraphEdge]:
        return list(self.outgoing.get(node_id, ()))

    def get_incoming_edges(self, node_id: ComponentId) -> list[GraphEdge]:
        return list(self.incoming.get(node_id, ()))

    def all_edges(self) -> list[GraphEdge]:
        return [e for edges in self.outgoing.values() for e in edges]

    # --- neighbours ---

    def get_dependencies(self, node_id: ComponentId) -> list[GraphNode]:
        """Nodes `node_id` depends on (one per outgoing edge)."""
        return [n for n in (self.nodes.get(e.target) for e in self.outgoing.get(node_id, ())) if n is not None]

    def get_dependents(self, node_id: ComponentId) -> list[GraphNode]:
        """Nodes that depend on `node_id` (one per incoming edge)."""
        return [n for n in (self.nodes.get(e.source) for e in self.incoming.get(node_id, ())) if n is not None]

    # --- summary ---

    def get_graph_stats(self) -> GraphStats:
        stats = GraphStats(node_count=len(self.nodes), edge_count=0)
        for node in self.nodes.values():
            t = node.type.value
            stats.nodes_by_type[t] = stats.nodes_by_type.get(t, 0) + 1
            stats.nodes_by_origin[node.origin] = stats.nodes_by_origin.get(node.origin, 0) + 1
        for edge in self.all_edges():
            stats.edge_count += 1
            t = edge.type.value
            stats.edges_by_type[t] = stats.edges_by_type.get(t, 0) + 1
        return stats

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes


def create_graph(metadata: dict[str, Any] | None = None) -> Graph:
    return Graph(metadata=dict(metadata or {}))


def merge_graphs(target: Graph, source: Graph) -> Graph:
    """Union `source` into `target` in place.

    Existing target nodes win on id conflicts. Edges are de-duplicated on
    (source, target, type); edges whose endpoints are absent from the target
    after the node merge are skipped.
    """
    for node in source.nodes.values():
        if node.id not in target.nodes:
            target.add_node(node)

    for edge in source.all_edges():
        if edge.source not in target.nodes or edge.target not in target.nodes:
            continue
        if target.has_edge(edge.source, edge.target, edge.type):
            continue
        target.add_edge(replace(edge, metadata=copy.deepcopy(edge.metadata)))
    return target


def clone_graph(graph: Graph) -> Graph:
    """Deep, independent copy."""
    cloned = create_graph(copy.deepcopy(graph.metadata))
    for node in graph.nodes.values():
        cloned.add_node(node)

    # One copy per edge object, shared by the outgoing and incoming indexes.
    copies: dict[int, GraphEdge] = {}

    def dup(edge: GraphEdge) -> GraphEdge:
        if id(edge) not in copies:
            copies[id(edge)] = replace(edge, metadata=copy.deepcopy(edge.metadata))
        return copies[id(edge)]

    cloned.outgoing = {k: [dup(e) for e in v] for k, v in graph.outgoing.items()}
    cloned.incoming = {k: [dup(e) for e in v] for k, v in graph.incoming.items()}
    return cloned
