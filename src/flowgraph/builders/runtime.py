"""
Build a dependency graph from what a runtime environment has deployed.

Component types are fetched concurrently, each under its own deadline. A type
that fails contributes no nodes and is reported in `RuntimeBuildResult.types`,
so a degraded runtime still yields a partial graph; check `complete` before
trusting the graph as a full picture.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

import httpx

from ..adapters.base import RuntimeAdapter, RuntimeFetchError
from ..config import EnvironmentConfig
from ..graph.store import Graph, create_graph
from ..hashing import extract_label, hash_api_signature, hash_config
from ..models import COMPONENT_FLOWS, ComponentRef, ComponentType, GraphNode
from ..settings import GraphSettings
from .local import UnresolvedReference, add_reference_edges

logger = logging.getLogger(__name__)

ALL_TYPES: tuple[ComponentType, ...] = (
    ComponentType.WORKFLOW,
    ComponentType.TASK,
    ComponentType.SCHEMA,
    ComponentType.VIEW,
    ComponentType.FUNCTION,
    ComponentType.EXTENSION,
)


@dataclass
class TypeFetchResult:
    component_type: ComponentType
    status: Literal["ok", "failed"]
    count: int = 0
    # Records listed but dropped because no definition body could be resolved.
    dropped: int = 0
    error: str | None = None
    elapsed_ms: float = 0.0


@dataclass
class RuntimeBuildResult:
    graph: Graph
    types: dict[ComponentType, TypeFetchResult] = field(default_factory=dict)
    unresolved: list[UnresolvedReference] = field(default_factory=list)

    @property
    def failed_types(self) -> list[ComponentType]:
        return [t for t, r in self.types.items() if r.status == "failed"]

    @property
    def complete(self) -> bool:
        return not self.failed_types


def _text(*values: Any) -> str:
    for v in values:
        if v is not None and str(v).strip():
            return str(v).strip()
    return ""


class RuntimeGraphBuilder:
    def __init__(self, adapter: RuntimeAdapter, settings: GraphSettings):
        self.adapter = adapter
        self.settings = settings

    def _to_node(
        self, record: Mapping[str, Any], definition: Mapping[str, Any], component_type: ComponentType
    ) -> GraphNode | None:
        domain = _text(definition.get("domain"), record.get("domain"))
        flow = _text(definition.get("flow"), record.get("flow"), COMPONENT_FLOWS[component_type])
        key = _text(definition.get("key"), record.get("key"))
        version = _text(definition.get("version"), record.get("flowVersion"), self.settings.default_version)
        if not (domain and key):
            return None

        extensions = record.get("extensions") if isinstance(record.get("extensions"), dict) else {}
        compute = self.settings.compute_hashes
        tags = record.get("tags") or definition.get("tags") or []
        return GraphNode(
            ref=ComponentRef(domain=domain.lower(), flow=flow.lower(), key=key.lower(), version=version.lower()),
            type=component_type,
            origin="runtime",
            definition=dict(definition),
            label=extract_label(definition),
            tags=tuple(str(t) for t in tags) if isinstance(tags, list) else (),
            api_hash=hash_api_signature(definition, component_type) if compute else None,
            config_hash=hash_config(definition, component_type) if compute else None,
            metadata={
                "runtimeId": record.get("id"),
                "etag": record.get("etag"),
                "createdAt": record.get("createdAt"),
                "updatedAt": record.get("updatedAt"),
                "currentState": extensions.get("currentState"),
                "status": extensions.get("status"),
                "dataFetchedFromExtension": not record.get("attributes"),
            },
        )

    async def _collect(
        self, component_type: ComponentType, env: EnvironmentConfig, domain: str
    ) -> tuple[list[GraphNode], int]:
        records = await self.adapter.fetch_components_by_type(
            component_type, env, domain, page_size=self.settings.page_size
        )
        nodes: list[GraphNode] = []
        dropped = 0
        for record in records:
            definition = await self.adapter.resolve_definition(record, component_type, env, domain)
            usable = isinstance(definition, Mapping) and definition
            node = self._to_node(record, definition, component_type) if usable else None
            if node is None:
                dropped += 1
                label = record.get("key") or record.get("id")
                logger.debug(f"Dropping {component_type.value} record {label}: no definition")
                continue
            nodes.append(node)
        return nodes, dropped

    async def _fetch_type(
        self,
        component_type: ComponentType,
        env: EnvironmentConfig,
        domain: str,
        semaphore: asyncio.Semaphore,
    ) -> tuple[TypeFetchResult, list[GraphNode]]:
        async with semaphore:
            t0 = time.perf_counter()
            try:
                nodes, dropped = await asyncio.wait_for(
                    self._collect(component_type, env, domain), timeout=self.settings.type_fetch_timeout
                )
            except asyncio.TimeoutError:
                error = f"timed out after {self.settings.type_fetch_timeout:g}s"
            except (RuntimeFetchError, httpx.HTTPError, ValueError) as exc:
                error = str(exc) or exc.__class__.__name__
            else:
                elapsed = (time.perf_counter() - t0) * 1000
                logger.info(f"Fetched {len(nodes)} {component_type.value} component(s) from {env.display_name}")
                result = TypeFetchResult(component_type, "ok", count=len(nodes), dropped=dropped, elapsed_ms=elapsed)
                return result, nodes

            elapsed = (time.perf_counter() - t0) * 1000
            logger.warning(f"Failed to fetch {component_type.value} components from {env.display_name}: {error}")
            return TypeFetchResult(component_type, "failed", error=error, elapsed_ms=elapsed), []

    async def build(
        self,
        env: EnvironmentConfig,
        domain: str | None = None,
        include_types: Iterable[ComponentType] | None = None,
    ) -> RuntimeBuildResult:
        domain = domain or env.domain
        types = [ComponentType(t) for t in (include_types or ALL_TYPES)]
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_types)

        fetched = await asyncio.gather(*(self._fetch_type(t, env, domain, semaphore) for t in types))

        graph = create_graph({"origin": "runtime", "environment": env.id, "domain": domain})
        result = RuntimeBuildResult(graph=graph)
        for type_result, nodes in fetched:
            result.types[type_result.component_type] = type_result
            for node in nodes:
                if graph.has_node(node.id):
                    logger.debug(f"Duplicate runtime component {node.id}, keeping the first")
                    continue
                graph.add_node(node)

        result.unresolved = add_reference_edges(
            graph,
            default_domain=self.settings.default_domain,
            default_version=self.settings.default_version,
        )
        if not result.complete:
            failed = ", ".join(t.value for t in result.failed_types)
            logger.warning(f"Runtime graph for {env.display_name} is partial; failed types: {failed}")
        return result
