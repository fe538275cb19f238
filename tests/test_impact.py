import pytest

from flowgraph.analysis import (
    estimate_deployment_risk,
    find_critical_components,
    find_shortest_path,
    get_all_dependents,
    get_direct_dependents,
    impact_cone,
)
from flowgraph.graph import create_graph
from flowgraph.models import ComponentType


@pytest.fixture
def graph(make_node, link):
    """t1 -> s1, w2 -> s1, w1 -> t1, w3 -> w1."""
    g = create_graph()
    s1 = g.add_node(make_node("s1", ComponentType.SCHEMA))
    t1 = g.add_node(make_node("t1"))
    w1 = g.add_node(make_node("w1", ComponentType.WORKFLOW))
    w2 = g.add_node(make_node("w2", ComponentType.WORKFLOW))
    w3 = g.add_node(make_node("w3", ComponentType.WORKFLOW))
    link(g, t1, s1)
    link(g, w2, s1)
    link(g, w1, t1)
    link(g, w3, w1)
    return g


S1 = "core/sys-schemas/s1@1.0.0"
T1 = "core/sys-tasks/t1@1.0.0"
W1 = "core/sys-flows/w1@1.0.0"
W2 = "core/sys-flows/w2@1.0.0"
W3 = "core/sys-flows/w3@1.0.0"


def test_impact_cone_walks_dependents_breadth_first(graph):
    cone = impact_cone(graph, [S1])

    assert cone.affected_ids == [S1, T1, W2, W1, W3]
    assert cone.total_affected == 5
    assert cone.max_depth == 3
    assert cone.by_type == {"schema": 1, "task": 1, "workflow": 3}
    deepest = cone.paths[-1]
    assert deepest.target == W3
    assert deepest.path == (S1, T1, W1, W3)
    assert deepest.path_string == "s1@1.0.0 -> t1@1.0.0 -> w1@1.0.0 -> w3@1.0.0"


def test_impact_cone_max_depth(graph):
    assert impact_cone(graph, [S1], max_depth=1).affected_ids == [S1, T1, W2]


def test_impact_cone_type_filter_stops_traversal(graph):
    cone = impact_cone(graph, [S1], include_types=["schema", "task"])
    assert cone.affected_ids == [S1, T1]


def test_impact_cone_without_paths(graph):
    cone = impact_cone(graph, [S1, "core/sys-tasks/ghost@1.0.0"], include_paths=False)
    assert cone.paths == []
    assert cone.start_ids == [S1, "core/sys-tasks/ghost@1.0.0"]


def test_dependents(graph):
    assert [n.id for n in get_direct_dependents(graph, S1)] == [T1, W2]
    assert [n.id for n in get_all_dependents(graph, S1)] == [T1, W2, W1, W3]
    assert get_all_dependents(graph, W3) == []


def test_critical_components(graph):
    critical = find_critical_components(graph, threshold=2)
    assert [(c.node.id, c.dependent_count) for c in critical] == [(S1, 2)]
    assert find_critical_components(graph) == []


def test_deployment_risk_levels(make_node, link, graph):
    assert estimate_deployment_risk(graph, [S1]).risk == "low"
    assert estimate_deployment_risk(graph, [S1]).affected_count == 5

    star = create_graph()
    hub = star.add_node(make_node("hub"))
    for i in range(6):
        link(star, star.add_node(make_node(f"w{i}", ComponentType.WORKFLOW)), hub)
    risk = estimate_deployment_risk(star, [hub.id])
    assert (risk.risk, risk.affected_count) == ("medium", 7)


def test_shortest_path(graph):
    assert find_shortest_path(graph, S1, W3) == [S1, T1, W1, W3]
    assert find_shortest_path(graph, W3, S1) is None
    assert find_shortest_path(graph, S1, S1) == [S1]


def test_shortest_path_skips_removed_components(graph):
    graph.remove_node(T1)
    assert find_shortest_path(graph, S1, T1) is None
    assert find_shortest_path(graph, S1, W3) is None
    assert find_shortest_path(graph, S1, W2) == [S1, W2]
