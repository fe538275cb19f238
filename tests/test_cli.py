import json

import pytest
from click.testing import CliRunner

from flowgraph import __version__
from flowgraph.cli.main import cli
from flowgraph.graph import create_graph, load_graph, save_graph
from flowgraph.models import ComponentType

T1 = "core/sys-tasks/t1@1.0.0"
W1 = "core/sys-flows/w1@1.0.0"
GONE = "core/sys-schemas/gone@1.0.0"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def graphs(tmp_path, make_node, link):
    local = create_graph(
        {"origin": "local", "unresolved": [{"source": W1, "target": GONE, "type": "schema-ref"}]}
    )
    t1 = local.add_node(make_node("t1", api_hash="new"))
    w1 = local.add_node(make_node("w1", ComponentType.WORKFLOW))
    link(local, w1, t1)

    runtime = create_graph({"origin": "runtime"})
    runtime.add_node(make_node("t1", api_hash="old", origin="runtime"))

    return save_graph(local, tmp_path / "local.json"), save_graph(runtime, tmp_path / "runtime.json")


def test_version(runner):
    result = runner.invoke(cli, ["version"])
    assert result.exit_code == 0
    assert result.stdout.strip() == __version__


def test_local_saves_graph(runner, tmp_path, write_component):
    write_component(tmp_path, "src/Tasks/t1.json", {"key": "t1", "domain": "core", "version": "1.0.0"})
    out = tmp_path / "out" / "graph.json"

    result = runner.invoke(cli, ["local", str(tmp_path / "src"), "--out", str(out)])
    assert result.exit_code == 0, result.output
    assert list(load_graph(out).nodes) == [T1]


def test_order(runner, graphs):
    local_path, _ = graphs
    result = runner.invoke(cli, ["order", str(local_path), W1, T1])
    assert result.exit_code == 0, result.output
    lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
    assert lines == [f"1. {T1}", f"2. {W1}"]


def test_diff_json(runner, graphs):
    local_path, runtime_path = graphs
    result = runner.invoke(cli, ["diff", str(local_path), str(runtime_path), "--json"])
    assert result.exit_code == 0, result.output

    summary = json.loads(result.stdout)
    assert summary["onlyLocal"] == [W1]
    assert summary["apiDrift"] == [T1]
    assert summary["deploymentOrder"] == [T1, W1]
    assert summary["ranking"][0] == {"id": T1, "dependents": 1}
    assert {v["kind"] for v in summary["violations"]} >= {"api-drift", "node-added", "missing-dependency"}
    missing = next(v for v in summary["violations"] if v["kind"] == "missing-dependency")
    assert missing == {
        "kind": "missing-dependency",
        "severity": "error",
        "message": "w1@1.0.0 depends on gone@1.0.0, which does not exist",
    }


def test_deps_unknown_component(runner, graphs):
    local_path, _ = graphs
    result = runner.invoke(cli, ["deps", str(local_path), "core/sys-tasks/ghost@1.0.0"])
    assert result.exit_code == 1
    assert "Unknown component" in result.output


def test_ping_without_environment(runner, tmp_path):
    result = runner.invoke(cli, ["ping", "--workspace", str(tmp_path)])
    assert result.exit_code == 1
    assert "No environment selected" in result.output


def test_diff_reports_missing_dependency_of_saved_local_build(runner, tmp_path, write_component):
    write_component(
        tmp_path,
        "src/Tasks/t1.json",
        {"key": "t1", "domain": "core", "version": "1.0.0", "schema": {"ref": "Schemas/gone.json"}},
    )
    local_out, runtime_out = tmp_path / "local.json", tmp_path / "runtime.json"
    save_graph(create_graph({"origin": "runtime"}), runtime_out)

    assert runner.invoke(cli, ["local", str(tmp_path / "src"), "--out", str(local_out)]).exit_code == 0
    result = runner.invoke(cli, ["diff", str(local_out), str(runtime_out), "--json"])
    assert result.exit_code == 0, result.output

    kinds = [v["kind"] for v in json.loads(result.stdout)["violations"]]
    assert "missing-dependency" in kinds
