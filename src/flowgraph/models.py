"""Core value types for the component dependency graph."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

ComponentId = str  # "{domain}/{flow}/{key}@{version}"

Origin = Literal["local", "runtime"]


class ComponentType(str, Enum):
    """Kinds of deployable components."""

    WORKFLOW = "workflow"
    TASK = "task"
    SCHEMA = "schema"
    VIEW = "view"
    FUNCTION = "function"
    EXTENSION = "extension"


class EdgeType(str, Enum):
    """Relationship a component declares on another."""

    TASK_REF = "task-ref"
    SCHEMA_REF = "schema-ref"
    VIEW_REF = "view-ref"
    FUNCTION_REF = "function-ref"
    EXTENSION_REF = "extension-ref"
    SUBFLOW_REF = "subflow-ref"

    @classmethod
    def for_component(cls, component_type: ComponentType) -> "EdgeType":
        return _EDGE_BY_COMPONENT[ComponentType(component_type)]


_EDGE_BY_COMPONENT: dict[ComponentType, EdgeType] = {
    ComponentType.TASK: EdgeType.TASK_REF,
    ComponentType.SCHEMA: EdgeType.SCHEMA_REF,
    ComponentType.VIEW: EdgeType.VIEW_REF,
    ComponentType.FUNCTION: EdgeType.FUNCTION_REF,
    ComponentType.EXTENSION: EdgeType.EXTENSION_REF,
    ComponentType.WORKFLOW: EdgeType.SUBFLOW_REF,
}

# Each component type is deployed through its own system flow on the runtime.
COMPONENT_FLOWS: dict[ComponentType, str] = {
    ComponentType.TASK: "sys-tasks",
    ComponentType.SCHEMA: "sys-schemas",
    ComponentType.VIEW: "sys-views",
    ComponentType.FUNCTION: "sys-functions",
    ComponentType.EXTENSION: "sys-extensions",
    ComponentType.WORKFLOW: "sys-flows",
}

FLOW_COMPONENTS: dict[str, ComponentType] = {flow: ct for ct, flow in COMPONENT_FLOWS.items()}

_COMPONENT_ID_RE = re.compile(r"^([^/]+)/([^/]+)/([^@]+)@(.+)$")


@dataclass(frozen=True, slots=True)
class ComponentRef:
    """Identity of one versioned component."""

    domain: str
    flow: str
    key: str
    version: str

    @property
    def id(self) -> ComponentId:
        return f"{self.domain}/{self.flow}/{self.key}@{self.version}"

    @property
    def base_id(self) -> str:
        """Identity without the version, shared by every version of a component."""
        return f"{self.domain}/{self.flow}/{self.key}"

    def to_dict(self) -> dict[str, str]:
        return {"domain": self.domain, "flow": self.flow, "key": self.key, "version": self.version}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "ComponentRef":
        return cls(
            domain=str(d["domain"]), flow=str(d["flow"]), key=str(d["key"]), version=str(d["version"])
        )


def parse_component_id(component_id: str) -> ComponentRef | None:
    m = _COMPONENT_ID_RE.match(component_id)
    if not m:
        return None
    return ComponentRef(domain=m.group(1), flow=m.group(2), key=m.group(3), version=m.group(4))


@dataclass(frozen=True, slots=True)
class GraphNode:
    """A component in the graph.

    `definition` is owned by the node: graphs deep-copy it on insertion and it
    must not be mutated afterwards. Updates are modeled as node replacement.
    """

    ref: ComponentRef
    type: ComponentType
    origin: Origin
    definition: dict[str, Any] = field(default_factory=dict)
    label: str | None = None
    tags: tuple[str, ...] = ()
    api_hash: str | None = None
    config_hash: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def id(self) -> ComponentId:
        return self.ref.id

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ref": self.ref.to_dict(),
            "type": self.type.value,
            "origin": self.origin,
            "label": self.label,
            "definition": self.definition,
            "tags": list(self.tags),
            "apiHash": self.api_hash,
            "configHash": self.config_hash,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "GraphNode":
        return cls(
            ref=ComponentRef.from_dict(d["ref"]),
            type=ComponentType(d["type"]),
            origin=d["origin"],
            definition=d.get("definition") or {},
            label=d.get("label"),
            tags=tuple(d.get("tags") or ()),
            api_hash=d.get("apiHash"),
            config_hash=d.get("configHash"),
            metadata=d.get("metadata") or {},
        )


@dataclass(frozen=True, slots=True)
class GraphEdge:
    """A directed dependency: `source` depends on `target`."""

    id: str
    source: ComponentId
    target: ComponentId
    type: EdgeType
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def triple(self) -> tuple[ComponentId, ComponentId, EdgeType]:
        return (self.source, self.target, self.type)

    @staticmethod
    def make_id(source: ComponentId, target: ComponentId, edge_type: EdgeType) -> str:
        return f"{source}->{target}:{EdgeType(edge_type).value}"

    @classmethod
    def between(
        cls,
        source: ComponentId,
        target: ComponentId,
        edge_type: EdgeType,
        metadata: dict[str, Any] | None = None,
    ) -> "GraphEdge":
        edge_type = EdgeType(edge_type)
        return cls(
            id=cls.make_id(source, target, edge_type),
            source=source,
            target=target,
            type=edge_type,
            metadata=dict(metadata or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "from": self.source,
            "to": self.target,
            "type": self.type.value,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "GraphEdge":
        return cls(
            id=d["id"],
            source=d["from"],
            target=d["to"],
            type=EdgeType(d["type"]),
            metadata=d.get("metadata") or {},
        )
