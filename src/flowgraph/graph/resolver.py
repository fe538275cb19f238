"""Dependency closure, deployment ordering and cycle detection."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..models import ComponentId, GraphEdge, GraphNode
from .store import Graph

logger = logging.getLogger(__name__)


def get_transitive_dependencies(graph: Graph, node_id: ComponentId) -> list[GraphNode]:
    """Everything `node_id` depends on, directly or not, dependencies first.

    A node already on the walk is not re-entered, so cycles terminate. A node
    on a cycle through `node_id` can appear in its own closure.
    """
    if not graph.has_node(node_id):
        return []

    visited: set[ComponentId] = {node_id}
    emitted: set[ComponentId] = set()
    result: list[GraphNode] = []

    def walk(current: ComponentId) -> None:
        for dep in graph.get_dependencies(current):
            if dep.id not in visited:
                visited.add(dep.id)
                walk(dep.id)
            if dep.id not in emitted:
                emitted.add(dep.id)
                result.append(dep)

    walk(node_id)
    return result


@dataclass
class DeploymentPlan:
    order: list[GraphNode] = field(default_factory=list)
    # Back-edges ignored to break cycles; each one closes a cycle in the subset.
    skipped_edges: list[GraphEdge] = field(default_factory=list)

    @property
    def ids(self) -> list[ComponentId]:
        return [n.id for n in self.order]

    @property
    def has_cycles(self) -> bool:
        return bool(self.skipped_edges)


def plan_deployment(graph: Graph, node_ids: Iterable[ComponentId]) -> DeploymentPlan:
    """Topological order of `node_ids`, dependencies before dependents.

    Only edges between members of the subset constrain the order. A back-edge
    into a node still being visited is skipped (and reported) instead of
    failing, so cyclic subsets still get a best-effort order.
    """
    requested = list(dict.fromkeys(node_ids))
    subset = set(requested)
    plan = DeploymentPlan()

    visited: set[ComponentId] = set()
    visiting: set[ComponentId] = set()

    def visit(current: ComponentId) -> None:
        visiting.add(current)
        for edge in graph.get_outgoing_edges(current):
            if edge.target not in subset or edge.target in visited:
                continue
            if edge.target in visiting:
                logger.info(f"Cycle: skipping dependency {edge.source} -> {edge.target} ({edge.type.value})")
                plan.skipped_edges.append(edge)
                continue
            if graph.has_node(edge.target):
                visit(edge.target)
        visiting.discard(current)
        visited.add(current)
        node = graph.get_node(current)
        if node is not None:
            plan.order.append(node)

    for node_id in requested:
        if node_id in visited:
            continue
        if not graph.has_node(node_id):
            logger.debug(f"Deployment order: {node_id} is not in the graph, ignoring")
            continue
        visit(node_id)

    return plan


def get_deployment_order(graph: Graph, node_ids: Iterable[ComponentId]) -> list[GraphNode]:
    return plan_deployment(graph, node_ids).order


def find_cycles(graph: Graph) -> list[list[ComponentId]]:
    """Distinct dependency cycles, each as a path closed by its first id.

    Cycles made of the same members are reported once.
    """
    cycles: list[list[ComponentId]] = []
    seen: set[frozenset[ComponentId]] = set()
    visited: set[ComponentId] = set()
    stack: list[ComponentId] = []
    on_stack: set[ComponentId] = set()

    def dfs(current: ComponentId) -> None:
        visited.add(current)
        stack.append(current)
        on_stack.add(current)
        for edge in graph.get_outgoing_edges(current):
            target = edge.target
            if target in on_stack:
                cycle = stack[stack.index(target):] + [target]
                members = frozenset(cycle)
                if members not in seen:
                    seen.add(members)
                    cycles.append(cycle)
            elif target not in visited and graph.has_node(target):
                dfs(target)
        stack.pop()
        on_stack.discard(current)

    for node_id in list(graph.nodes):
        if node_id not in visited:
            dfs(node_id)
    return cycles
