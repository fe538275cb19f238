"""Findings a reviewer should look at before deploying local changes."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Literal

from ..builders.local import UnresolvedReference
from ..graph.resolver import find_cycles
from ..graph.store import Graph
from ..models import ComponentId, parse_component_id
from .drift import GraphDiff, diff_graphs

Severity = Literal["error", "warning", "info"]
ViolationKind = Literal[
    "node-added",
    "node-removed",
    "node-changed",
    "version-drift",
    "api-drift",
    "config-drift",
    "missing-dependency",
    "circular-dependency",
]


@dataclass(frozen=True, slots=True)
class Violation:
    kind: ViolationKind
    severity: Severity
    component_ids: tuple[ComponentId, ...]
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class ViolationReport:
    violations: list[Violation] = field(default_factory=list)

    def by_severity(self, severity: Severity) -> list[Violation]:
        return [v for v in self.violations if v.severity == severity]

    def count(self, kind: ViolationKind) -> int:
        return sum(1 for v in self.violations if v.kind == kind)

    @property
    def errors(self) -> list[Violation]:
        return self.by_severity("error")

    @property
    def warnings(self) -> list[Violation]:
        return self.by_severity("warning")

    @property
    def infos(self) -> list[Violation]:
        return self.by_severity("info")

    @property
    def ok(self) -> bool:
        return not self.errors


def _short(node_id: ComponentId) -> str:
    ref = parse_component_id(node_id)
    return f"{ref.key}@{ref.version}" if ref else node_id


def _versions(graph: Graph) -> dict[str, list[str]]:
    versions: dict[str, list[str]] = {}
    for node in graph.all_nodes():
        versions.setdefault(node.ref.base_id, []).append(node.ref.version)
    return versions


def _node_violations(local: Graph, runtime: Graph, diff: GraphDiff) -> list[Violation]:
    out = []
    for node_id in diff.only_local:
        out.append(
            Violation(
                "node-added",
                "info",
                (node_id,),
                f"Component {_short(node_id)} exists in local but not in runtime",
                {"componentType": local.nodes[node_id].type.value},
            )
        )
    for node_id in diff.only_runtime:
        out.append(
            Violation(
                "node-removed",
                "warning",
                (node_id,),
                f"Component {_short(node_id)} exists in runtime but not in local",
                {"componentType": runtime.nodes[node_id].type.value},
            )
        )
    for node_id, changes in diff.changed_fields.items():
        out.append(
            Violation(
                "node-changed",
                "info",
                (node_id,),
                f"Component {_short(node_id)} has changes: {', '.join(changes)}",
                {"changes": list(changes)},
            )
        )
    return out


def _version_drift(local: Graph, runtime: Graph) -> list[Violation]:
    out = []
    runtime_versions = _versions(runtime)
    for base_id, local_vers in _versions(local).items():
        runtime_vers = runtime_versions.get(base_id)
        if runtime_vers is None or sorted(local_vers) == sorted(runtime_vers):
            continue
        key = base_id.rsplit("/", 1)[-1]
        out.append(
            Violation(
                "version-drift",
                "warning",
                (f"{base_id}@{local_vers[0]}",),
                f"Version drift for {key}: local has {', '.join(local_vers)}, "
                f"runtime has {', '.join(runtime_vers)}",
                {"localVersions": list(local_vers), "runtimeVersions": list(runtime_vers)},
            )
        )
    return out


def _hash_drift(diff: GraphDiff) -> list[Violation]:
    out = []
    for entry in diff.drift:
        if entry.kind == "api":
            out.append(
                Violation(
                    "api-drift",
                    "error",
                    (entry.id,),
                    f"API breaking change detected in {_short(entry.id)}",
                    {"localHash": entry.local_hash, "runtimeHash": entry.runtime_hash},
                )
            )
        else:
            out.append(
                Violation(
                    "config-drift",
                    "warning",
                    (entry.id,),
                    f"Configuration drift detected in {_short(entry.id)}",
                    {"localHash": entry.local_hash, "runtimeHash": entry.runtime_hash},
                )
            )
    return out


def _missing_dependencies(unresolved: Iterable[UnresolvedReference]) -> list[Violation]:
    return [
        Violation(
            "missing-dependency",
            "error",
            (u.source,),
            f"{_short(u.source)} depends on {_short(u.target)}, which does not exist",
            {"missing": u.target, "dependencyType": u.type.value},
        )
        for u in unresolved
    ]


def _circular_dependencies(graph: Graph) -> list[Violation]:
    return [
        Violation(
            "circular-dependency",
            "error",
            tuple(cycle[:-1]),
            f"Circular dependency: {' -> '.join(_short(c) for c in cycle)}",
            {"cycle": list(cycle)},
        )
        for cycle in find_cycles(graph)
    ]


def collect_violations(
    local: Graph,
    runtime: Graph,
    diff: GraphDiff | None = None,
    unresolved: Iterable[UnresolvedReference] = (),
) -> ViolationReport:
    """Everything worth flagging between a local graph and a runtime graph.

    Dependency checks (missing and circular) look at the local side only.
    Pass `unresolved` from the local build result to report missing targets.
    """
    diff = diff if diff is not None else diff_graphs(local, runtime)
    report = ViolationReport()
    report.violations.extend(_node_violations(local, runtime, diff))
    report.violations.extend(_version_drift(local, runtime))
    report.violations.extend(_hash_drift(diff))
    report.violations.extend(_missing_dependencies(unresolved))
    report.violations.extend(_circular_dependencies(local))
    return report
