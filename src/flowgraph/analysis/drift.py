"""
Compare a local graph with a runtime graph over the same component ids.

Every shared component lands in exactly one bucket: API drift (contract
changed, breaking), config drift (behavior-only change) or unchanged. A missing
hash on one side and a digest on the other counts as a mismatch; two missing
hashes compare equal.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

from ..graph.resolver import DeploymentPlan, plan_deployment
from ..graph.store import Graph
from ..models import ComponentId, GraphNode

DriftKind = Literal["api", "config"]


@dataclass(frozen=True, slots=True)
class DriftEntry:
    id: ComponentId
    kind: DriftKind
    local_hash: str | None
    runtime_hash: str | None


@dataclass
class GraphDiff:
    only_local: list[ComponentId] = field(default_factory=list)
    only_runtime: list[ComponentId] = field(default_factory=list)
    in_both: list[ComponentId] = field(default_factory=list)
    api_drift: list[ComponentId] = field(default_factory=list)
    config_drift: list[ComponentId] = field(default_factory=list)
    unchanged: list[ComponentId] = field(default_factory=list)
    drift: list[DriftEntry] = field(default_factory=list)
    # Informational only: label/tag differences of shared components.
    changed_fields: dict[ComponentId, list[str]] = field(default_factory=dict)

    @property
    def needs_attention(self) -> list[ComponentId]:
        """New components plus breaking changes."""
        return self.only_local + self.api_drift

    @property
    def has_drift(self) -> bool:
        return bool(self.only_local or self.only_runtime or self.api_drift or self.config_drift)


@dataclass(frozen=True, slots=True)
class ImpactEntry:
    id: ComponentId
    dependents: int


@dataclass
class ChangePlan:
    diff: GraphDiff
    ranking: list[ImpactEntry]
    deployment: DeploymentPlan


def _changed_fields(local: GraphNode, runtime: GraphNode) -> list[str]:
    changes = []
    if local.label != runtime.label:
        changes.append("label")
    if list(local.tags) != list(runtime.tags):
        changes.append("tags")
    return changes


def diff_graphs(local: Graph, runtime: Graph) -> GraphDiff:
    diff = GraphDiff()
    for node_id, local_node in local.nodes.items():
        runtime_node = runtime.get_node(node_id)
        if runtime_node is None:
            diff.only_local.append(node_id)
            continue

        diff.in_both.append(node_id)
        if local_node.api_hash != runtime_node.api_hash:
            diff.api_drift.append(node_id)
            diff.drift.append(DriftEntry(node_id, "api", local_node.api_hash, runtime_node.api_hash))
        elif local_node.config_hash != runtime_node.config_hash:
            diff.config_drift.append(node_id)
            diff.drift.append(DriftEntry(node_id, "config", local_node.config_hash, runtime_node.config_hash))
        else:
            diff.unchanged.append(node_id)

        changes = _changed_fields(local_node, runtime_node)
        if changes:
            diff.changed_fields[node_id] = changes

    diff.only_runtime = [node_id for node_id in runtime.nodes if node_id not in local.nodes]
    return diff


def rank_by_impact(local: Graph, ids: Iterable[ComponentId]) -> list[ImpactEntry]:
    """Order `ids` by how many local edges point at them, most depended-on first.

    Ties keep their input order.
    """
    entries = [ImpactEntry(node_id, len(local.get_incoming_edges(node_id))) for node_id in ids]
    return sorted(entries, key=lambda e: e.dependents, reverse=True)


def plan_changes(local: Graph, runtime: Graph) -> ChangePlan:
    """Diff, rank what needs attention, and order everything that must be deployed."""
    diff = diff_graphs(local, runtime)
    to_deploy = diff.only_local + diff.api_drift + diff.config_drift
    return ChangePlan(
        diff=diff,
        ranking=rank_by_impact(local, diff.needs_attention),
        deployment=plan_deployment(local, to_deploy),
    )
