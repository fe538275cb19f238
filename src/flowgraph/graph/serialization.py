from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ..models import GraphEdge, GraphNode
from .store import Graph


def graph_to_dict(graph: Graph) -> dict[str, Any]:
    return {
        "nodes": [[node_id, node.to_dict()] for node_id, node in graph.nodes.items()],
        "outgoingEdges": [[node_id, [e.to_dict() for e in edges]] for node_id, edges in graph.outgoing.items()],
        "incomingEdges": [[node_id, [e.to_dict() for e in edges]] for node_id, edges in graph.incoming.items()],
        "metadata": graph.metadata,
    }


def graph_from_dict(data: dict[str, Any]) -> Graph:
    """Rebuild a graph entry for entry; adjacency lists are taken as stored."""
    graph = Graph(metadata=dict(data.get("metadata") or {}))
    for node_id, raw in data.get("nodes") or []:
        graph.nodes[node_id] = GraphNode.from_dict(raw)
    graph.outgoing = {
        node_id: [GraphEdge.from_dict(e) for e in edges] for node_id, edges in data.get("outgoingEdges") or []
    }
    graph.incoming = {
        node_id: [GraphEdge.from_dict(e) for e in edges] for node_id, edges in data.get("incomingEdges") or []
    }
    return graph


def serialize_graph(graph: Graph, *, indent: int | None = 2) -> str:
    return json.dumps(graph_to_dict(graph), indent=indent, ensure_ascii=False, default=str)


def deserialize_graph(text: str) -> Graph:
    return graph_from_dict(json.loads(text))


def save_graph(graph: Graph, path: str | Path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(serialize_graph(graph), encoding="utf-8")
    return p


def load_graph(path: str | Path) -> Graph:
    return deserialize_graph(Path(path).read_text(encoding="utf-8"))
