"""Pytest configuration and fixtures."""
import json
import os

import pytest

# Keep ambient FLOWGRAPH_* variables from leaking into settings under test
for _name in [k for k in os.environ if k.startswith("FLOWGRAPH_")]:
    del os.environ[_name]


@pytest.fixture
def settings():
    from flowgraph.settings import GraphSettings

    return GraphSettings()


@pytest.fixture
def make_node():
    """Factory for graph nodes with sensible defaults."""
    from flowgraph.models import COMPONENT_FLOWS, ComponentRef, ComponentType, GraphNode

    def _make(
        key,
        component_type=ComponentType.TASK,
        *,
        version="1.0.0",
        domain="core",
        origin="local",
        api_hash=None,
        config_hash=None,
        definition=None,
        label=None,
        tags=(),
    ):
        return GraphNode(
            ref=ComponentRef(domain, COMPONENT_FLOWS[component_type], key, version),
            type=component_type,
            origin=origin,
            definition=definition or {},
            label=label,
            tags=tuple(tags),
            api_hash=api_hash,
            config_hash=config_hash,
        )

    return _make


@pytest.fixture
def link():
    """Add a dependency edge `source -> target` typed after the target."""
    from flowgraph.models import EdgeType, GraphEdge

    def _link(graph, source, target):
        edge_type = EdgeType.for_component(target.type)
        return graph.add_edge(GraphEdge.between(source.id, target.id, edge_type))

    return _link


@pytest.fixture
def write_component():
    """Write a JSON component file below a workspace root."""

    def _write(root, relative, data):
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(data if isinstance(data, str) else json.dumps(data), encoding="utf-8")
        return path

    return _write
