"""
Build a dependency graph from the component files of a workspace.

Two passes: every record becomes a node first, then references are extracted
from each node's definition and turned into edges. References whose target is
not in the workspace are reported as unresolved instead of failing the build.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..graph.store import Graph, create_graph
from ..hashing import extract_label, hash_api_signature, hash_config
from ..models import (
    COMPONENT_FLOWS,
    FLOW_COMPONENTS,
    ComponentId,
    ComponentRef,
    ComponentType,
    EdgeType,
    GraphEdge,
    GraphNode,
)
from ..references import extract_references, infer_type_from_path, unwrap_definition
from ..settings import GraphSettings
from .sources import ComponentSource, FileTreeSource, LocalRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UnresolvedReference:
    """A reference from `source` to a component the graph does not contain."""

    source: ComponentId
    target: ComponentId
    type: EdgeType

    def to_dict(self) -> dict[str, str]:
        return {"source": self.source, "target": self.target, "type": self.type.value}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "UnresolvedReference":
        return cls(source=str(d["source"]), target=str(d["target"]), type=EdgeType(d["type"]))


def unresolved_from_metadata(graph: Graph) -> list[UnresolvedReference]:
    """Unresolved references a local build recorded in the graph metadata."""
    return [UnresolvedReference.from_dict(u) for u in graph.metadata.get("unresolved") or []]


@dataclass(frozen=True, slots=True)
class SkippedRecord:
    path: str
    reason: str


@dataclass
class LocalBuildResult:
    graph: Graph
    unresolved: list[UnresolvedReference] = field(default_factory=list)
    skipped: list[SkippedRecord] = field(default_factory=list)
    elapsed_ms: float = 0.0


def _identity_field(record: Mapping[str, Any], definition: Mapping[str, Any], name: str) -> str:
    value = record.get(name)
    if value is None or value == "":
        value = definition.get(name)
    return str(value).strip() if value is not None else ""


def _tags(*sources: Mapping[str, Any]) -> tuple[str, ...]:
    for src in sources:
        tags = src.get("tags")
        if isinstance(tags, list):
            return tuple(str(t) for t in tags)
    return ()


def add_reference_edges(
    graph: Graph,
    *,
    default_domain: str,
    default_version: str,
) -> list[UnresolvedReference]:
    """Add one edge per distinct (source, target, type) found in node definitions.

    Returns the references whose target is missing from the graph.
    """
    unresolved: list[UnresolvedReference] = []
    for node in graph.all_nodes():
        refs = extract_references(node.definition, default_domain=default_domain, default_version=default_version)
        for extracted in refs:
            target = extracted.ref.id
            edge_type = EdgeType.for_component(extracted.type)
            if not graph.has_node(target):
                unresolved.append(UnresolvedReference(source=node.id, target=target, type=edge_type))
                continue
            if graph.has_edge(node.id, target, edge_type):
                continue
            graph.add_edge(GraphEdge.between(node.id, target, edge_type))
    return unresolved


class LocalGraphBuilder:
    def __init__(self, settings: GraphSettings):
        self.settings = settings

    def _component_type(self, record: LocalRecord, flow: str, root: Path | None) -> ComponentType | None:
        # A self-declared system flow beats the directory the file lives in.
        if flow.lower() in FLOW_COMPONENTS:
            return FLOW_COMPONENTS[flow.lower()]
        if record.component_type is not None:
            return record.component_type
        path = record.path
        if root is not None:
            try:
                path = record.path.relative_to(root)
            except ValueError:
                pass
        return infer_type_from_path(str(path))

    def _to_node(self, record: LocalRecord, root: Path | None) -> GraphNode | str:
        """A node for `record`, or the reason it cannot become one."""
        definition = unwrap_definition(record.data)
        if not isinstance(definition, Mapping):
            return "definition is not an object"

        key = _identity_field(record.data, definition, "key")
        domain = _identity_field(record.data, definition, "domain")
        version = _identity_field(record.data, definition, "version")
        if not (key and domain and version):
            return "missing key, domain or version"

        flow = _identity_field(record.data, definition, "flow")
        component_type = self._component_type(record, flow, root)
        if component_type is None:
            return "cannot infer component type"
        flow = flow or COMPONENT_FLOWS[component_type]

        ref = ComponentRef(domain=domain.lower(), flow=flow.lower(), key=key.lower(), version=version.lower())
        compute = self.settings.compute_hashes
        return GraphNode(
            ref=ref,
            type=component_type,
            origin="local",
            definition=dict(definition),
            label=extract_label(definition),
            tags=_tags(definition, record.data),
            api_hash=hash_api_signature(definition, component_type) if compute else None,
            config_hash=hash_config(definition, component_type) if compute else None,
            metadata={"filePath": str(record.path)},
        )

    def build(self, source: ComponentSource, *, root: str | Path | None = None) -> LocalBuildResult:
        t0 = time.perf_counter()
        root_path = Path(root) if root is not None else None
        graph = create_graph({"origin": "local", "basePath": str(root_path) if root_path else None})
        result = LocalBuildResult(graph=graph)

        for record in source.iter_records():
            node = self._to_node(record, root_path)
            if isinstance(node, str):
                logger.debug(f"Skipping {record.path}: {node}")
                result.skipped.append(SkippedRecord(path=str(record.path), reason=node))
                continue
            if graph.has_node(node.id):
                first = graph.get_node(node.id).metadata.get("filePath")
                reason = f"duplicate of {node.id} already loaded from {first}"
                logger.debug(f"Skipping {record.path}: {reason}")
                result.skipped.append(SkippedRecord(path=str(record.path), reason=reason))
                continue
            graph.add_node(node)

        result.unresolved = add_reference_edges(
            graph,
            default_domain=self.settings.default_domain,
            default_version=self.settings.default_version,
        )
        # Kept with the graph so a saved local graph can still report missing dependencies.
        graph.metadata["unresolved"] = [u.to_dict() for u in result.unresolved]
        result.elapsed_ms = (time.perf_counter() - t0) * 1000

        stats = graph.get_graph_stats()
        logger.info(
            f"Local graph: {stats.node_count} nodes, {stats.edge_count} edges, "
            f"{len(result.unresolved)} unresolved references, {len(result.skipped)} skipped files"
        )
        return result

    def build_path(self, root: str | Path) -> LocalBuildResult:
        """Build from the standard per-type directories under `root`."""
        return self.build(FileTreeSource(Path(root)), root=root)
