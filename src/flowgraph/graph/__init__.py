"""Graph store, serialization and dependency resolution."""

from .resolver import (
    DeploymentPlan,
    find_cycles,
    get_deployment_order,
    get_transitive_dependencies,
    plan_deployment,
)
from .serialization import deserialize_graph, graph_from_dict, graph_to_dict, load_graph, save_graph, serialize_graph
from .store import Graph, GraphStats, GraphStructureError, clone_graph, create_graph, merge_graphs

__all__ = [
    "Graph",
    "GraphStats",
    "GraphStructureError",
    "create_graph",
    "merge_graphs",
    "clone_graph",
    "graph_to_dict",
    "graph_from_dict",
    "serialize_graph",
    "deserialize_graph",
    "save_graph",
    "load_graph",
    "DeploymentPlan",
    "plan_deployment",
    "get_deployment_order",
    "get_transitive_dependencies",
    "find_cycles",
]
