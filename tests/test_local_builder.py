import pytest

from flowgraph.builders import FileTreeSource, LocalGraphBuilder
from flowgraph.models import ComponentType, EdgeType

SEND_EMAIL = "core/sys-tasks/send-email@1.0.0"
ONBOARDING = "core/sys-flows/onboarding@1.0.0"


@pytest.fixture
def workspace(tmp_path, write_component):
    write_component(
        tmp_path,
        "Tasks/send-email.json",
        {
            "key": "Send-Email",
            "domain": "core",
            "flow": "sys-tasks",
            "version": "1.0.0",
            "attributes": {"type": "6", "config": {"url": "http://mail"}, "tags": ["notify"]},
        },
    )
    write_component(
        tmp_path,
        "Workflows/onboarding.json",
        {
            "key": "onboarding",
            "domain": "core",
            "flow": "sys-flows",
            "version": "1.0.0",
            "attributes": {
                "labels": [{"label": "Onboarding", "language": "en-US"}],
                "startTransition": {"key": "begin", "target": "welcome"},
                "states": [
                    {
                        "key": "welcome",
                        "stateType": 1,
                        "onEntries": [
                            {"task": {"ref": "Tasks/send-email.json"}},
                            {"task": {"ref": "Tasks/missing.json"}},
                        ],
                    }
                ],
            },
        },
    )
    write_component(tmp_path, "Workflows/onboarding.diagram.json", {"nodePos": {}})
    write_component(tmp_path, "Workflows/broken.json", "{not json")
    write_component(tmp_path, "Schemas/no-version.json", {"key": "s", "domain": "core"})
    write_component(
        tmp_path,
        "Tasks/node_modules/pkg/dep.json",
        {"key": "dep", "domain": "core", "version": "1.0.0"},
    )
    return tmp_path


def test_builds_nodes_and_edges(workspace, settings):
    result = LocalGraphBuilder(settings).build_path(workspace)
    graph = result.graph

    assert sorted(graph.nodes) == [ONBOARDING, SEND_EMAIL]
    edges = graph.get_outgoing_edges(ONBOARDING)
    assert [(e.target, e.type) for e in edges] == [(SEND_EMAIL, EdgeType.TASK_REF)]
    assert graph.metadata["origin"] == "local"


def test_node_contents(workspace, settings):
    graph = LocalGraphBuilder(settings).build_path(workspace).graph

    task = graph.get_node(SEND_EMAIL)
    assert task.type is ComponentType.TASK
    assert task.origin == "local"
    assert task.definition["config"] == {"url": "http://mail"}
    assert task.tags == ("notify",)
    assert task.config_hash is not None
    assert task.metadata["filePath"].endswith("send-email.json")

    flow = graph.get_node(ONBOARDING)
    assert flow.label == "Onboarding"
    assert flow.api_hash is not None


def test_unresolved_and_skipped(workspace, settings):
    result = LocalGraphBuilder(settings).build_path(workspace)

    assert [(u.source, u.target) for u in result.unresolved] == [
        (ONBOARDING, "core/sys-tasks/missing@1.0.0")
    ]
    reasons = {p.rsplit("/", 1)[-1]: r for p, r in ((s.path.replace("\\", "/"), s.reason) for s in result.skipped)}
    assert reasons == {"no-version.json": "missing key, domain or version"}


def test_hashes_can_be_disabled(workspace):
    from flowgraph.settings import GraphSettings

    graph = LocalGraphBuilder(GraphSettings(compute_hashes=False)).build_path(workspace).graph
    assert all(n.api_hash is None and n.config_hash is None for n in graph.all_nodes())


def test_declared_flow_overrides_directory(tmp_path, write_component, settings):
    write_component(
        tmp_path,
        "Tasks/actually-a-schema.json",
        {"key": "acct", "domain": "core", "flow": "sys-schemas", "version": "1.0.0", "schema": {"type": "object"}},
    )
    graph = LocalGraphBuilder(settings).build_path(tmp_path).graph
    node = graph.get_node("core/sys-schemas/acct@1.0.0")
    assert node.type is ComponentType.SCHEMA


def test_first_duplicate_wins(tmp_path, write_component, settings):
    record = {"key": "t1", "domain": "core", "flow": "sys-tasks", "version": "1.0.0"}
    write_component(tmp_path, "Tasks/a.json", {**record, "label": "first"})
    write_component(tmp_path, "Tasks/b.json", {**record, "label": "second"})

    result = LocalGraphBuilder(settings).build_path(tmp_path)
    assert result.graph.get_node("core/sys-tasks/t1@1.0.0").label == "first"
    assert len(result.skipped) == 1
    assert result.skipped[0].reason.startswith("duplicate of core/sys-tasks/t1@1.0.0")


def test_file_tree_source_excludes(workspace):
    names = sorted(r.path.name for r in FileTreeSource(workspace).iter_records())
    assert names == ["no-version.json", "onboarding.json", "send-email.json"]


def test_unresolved_kept_in_graph_metadata(workspace, settings):
    from flowgraph.builders import unresolved_from_metadata
    from flowgraph.graph import deserialize_graph, serialize_graph

    result = LocalGraphBuilder(settings).build_path(workspace)
    assert result.graph.metadata["unresolved"] == [
        {"source": ONBOARDING, "target": "core/sys-tasks/missing@1.0.0", "type": "task-ref"}
    ]

    reloaded = deserialize_graph(serialize_graph(result.graph))
    assert unresolved_from_metadata(reloaded) == result.unresolved
