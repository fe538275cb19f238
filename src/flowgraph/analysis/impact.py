from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

from ..graph.store import Graph
from ..models import ComponentId, ComponentType, GraphNode, parse_component_id

RiskLevel = Literal["low", "medium", "high", "critical"]

# Upper bounds (inclusive) of affected components per risk level.
RISK_THRESHOLDS: tuple[tuple[int, RiskLevel], ...] = ((5, "low"), (15, "medium"), (30, "high"))


@dataclass(frozen=True, slots=True)
class DependencyPath:
    """How `target` comes to be affected: the chain of dependents from a start node."""

    target: ComponentId
    path: tuple[ComponentId, ...]
    depth: int

    @property
    def path_string(self) -> str:
        parts = []
        for node_id in self.path:
            ref = parse_component_id(node_id)
            parts.append(f"{ref.key}@{ref.version}" if ref else node_id)
        return " -> ".join(parts)


@dataclass
class ImpactCone:
    start_ids: list[ComponentId]
    affected: list[GraphNode] = field(default_factory=list)
    paths: list[DependencyPath] = field(default_factory=list)
    by_type: dict[str, int] = field(default_factory=dict)
    max_depth: int = 0

    @property
    def total_affected(self) -> int:
        return len(self.affected)

    @property
    def affected_ids(self) -> list[ComponentId]:
        return [n.id for n in self.affected]


@dataclass(frozen=True, slots=True)
class CriticalComponent:
    node: GraphNode
    dependent_count: int


@dataclass(frozen=True, slots=True)
class DeploymentRisk:
    risk: RiskLevel
    affected_count: int
    reason: str


def impact_cone(
    graph: Graph,
    start_ids: Iterable[ComponentId],
    *,
    max_depth: int | None = None,
    include_types: Iterable[ComponentType | str] | None = None,
    include_paths: bool = True,
) -> ImpactCone:
    """Everything affected by a change to `start_ids`, start nodes included.

    Reverse breadth-first walk over incoming edges. Nodes deeper than
    `max_depth` are not reported. A node whose type is filtered out by
    `include_types` is neither reported nor walked through.
    """
    start_ids = list(start_ids)
    allowed = {ComponentType(t) for t in include_types} if include_types is not None else None
    cone = ImpactCone(start_ids=start_ids)

    visited: set[ComponentId] = set()
    queue: deque[tuple[ComponentId, tuple[ComponentId, ...], int]] = deque()
    for node_id in start_ids:
        if graph.has_node(node_id) and node_id not in visited:
            visited.add(node_id)
            queue.append((node_id, (node_id,), 0))

    while queue:
        current, path, depth = queue.popleft()
        if max_depth is not None and depth > max_depth:
            continue
        node = graph.get_node(current)
        if node is None:
            continue
        if allowed is not None and node.type not in allowed:
            continue

        cone.max_depth = max(cone.max_depth, depth)
        cone.affected.append(node)
        cone.by_type[node.type.value] = cone.by_type.get(node.type.value, 0) + 1
        if include_paths and depth > 0:
            cone.paths.append(DependencyPath(target=current, path=path, depth=depth))

        for edge in graph.get_incoming_edges(current):
            if edge.source not in visited:
                visited.add(edge.source)
                queue.append((edge.source, path + (edge.source,), depth + 1))

    return cone


def get_direct_dependents(graph: Graph, node_id: ComponentId) -> list[GraphNode]:
    return graph.get_dependents(node_id)


def get_all_dependents(graph: Graph, node_id: ComponentId) -> list[GraphNode]:
    """Transitive dependents of `node_id`, nearest first, excluding itself."""
    cone = impact_cone(graph, [node_id], include_paths=False)
    return [n for n in cone.affected if n.id != node_id]


def find_critical_components(graph: Graph, threshold: int = 5) -> list[CriticalComponent]:
    """Components with at least `threshold` direct dependents, most depended-on first."""
    critical = []
    for node in graph.all_nodes():
        count = len(get_direct_dependents(graph, node.id))
        if count >= threshold:
            critical.append(CriticalComponent(node=node, dependent_count=count))
    return sorted(critical, key=lambda c: c.dependent_count, reverse=True)


def estimate_deployment_risk(graph: Graph, node_ids: Iterable[ComponentId]) -> DeploymentRisk:
    affected = impact_cone(graph, node_ids, include_paths=False).total_affected
    for bound, level in RISK_THRESHOLDS:
        if affected <= bound:
            break
    else:
        level = "critical"

    if level == "low":
        reason = f"Only {affected} component(s) affected"
    elif level == "medium":
        reason = f"{affected} components affected"
    elif level == "high":
        reason = f"{affected} components affected - significant impact"
    else:
        reason = f"{affected} components affected - very high impact"
    return DeploymentRisk(risk=level, affected_count=affected, reason=reason)


def find_shortest_path(graph: Graph, from_id: ComponentId, to_id: ComponentId) -> list[ComponentId] | None:
    """Shortest chain of dependents leading from `from_id` to `to_id`.

    Each id in the result depends on the one before it. None when `to_id`
    does not (transitively) depend on `from_id`.
    """
    if from_id == to_id:
        return [from_id] if graph.has_node(from_id) else None

    visited = {from_id}
    queue: deque[list[ComponentId]] = deque([[from_id]])
    while queue:
        path = queue.popleft()
        for edge in graph.get_incoming_edges(path[-1]):
            if edge.source in visited or not graph.has_node(edge.source):
                continue
            if edge.source == to_id:
                return path + [to_id]
            visited.add(edge.source)
            queue.append(path + [edge.source])
    return None
