"""flowgraph - dependency graphs of versioned workflow components.

This package provides:
- Reference normalization and extraction from component definitions
- An in-memory dependency multigraph with closure and deployment ordering
- Local (file tree) and runtime (HTTP) graph builders
- Drift, impact and violation analysis between local and runtime graphs
"""

from .graph import Graph, create_graph, get_deployment_order, get_transitive_dependencies
from .models import ComponentRef, ComponentType, EdgeType, GraphEdge, GraphNode

__version__ = "0.1.0"

__all__ = [
    "ComponentRef",
    "ComponentType",
    "EdgeType",
    "GraphNode",
    "GraphEdge",
    "Graph",
    "create_graph",
    "get_transitive_dependencies",
    "get_deployment_order",
]
