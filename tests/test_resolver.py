import logging

from flowgraph.graph import (
    create_graph,
    find_cycles,
    get_deployment_order,
    get_transitive_dependencies,
    plan_deployment,
)
from flowgraph.models import ComponentType


def _ids(nodes):
    return [n.id for n in nodes]


def _chain(make_node, link):
    """w1 -> t1 -> s1 and w1 -> s1."""
    graph = create_graph()
    s1 = graph.add_node(make_node("s1", ComponentType.SCHEMA))
    t1 = graph.add_node(make_node("t1"))
    w1 = graph.add_node(make_node("w1", ComponentType.WORKFLOW))
    link(graph, w1, t1)
    link(graph, w1, s1)
    link(graph, t1, s1)
    return graph, w1, t1, s1


def test_transitive_dependencies_are_post_order(make_node, link):
    graph, w1, t1, s1 = _chain(make_node, link)
    assert _ids(get_transitive_dependencies(graph, w1.id)) == [s1.id, t1.id]
    assert get_transitive_dependencies(graph, s1.id) == []
    assert get_transitive_dependencies(graph, "core/sys-tasks/unknown@1.0.0") == []


def test_transitive_dependencies_terminate_on_cycles(make_node, link):
    graph = create_graph()
    a = graph.add_node(make_node("a"))
    b = graph.add_node(make_node("b"))
    c = graph.add_node(make_node("c"))
    link(graph, a, b)
    link(graph, b, a)
    link(graph, c, c)

    mutual = _ids(get_transitive_dependencies(graph, a.id))
    assert sorted(mutual) == sorted([a.id, b.id])
    assert len(mutual) == len(set(mutual))

    assert _ids(get_transitive_dependencies(graph, c.id)) == [c.id]


def test_deployment_order_puts_dependencies_first(make_node, link):
    graph, w1, t1, s1 = _chain(make_node, link)
    order = _ids(get_deployment_order(graph, [w1.id, t1.id, s1.id]))

    assert order == [s1.id, t1.id, w1.id]


def test_deployment_order_only_considers_requested_nodes(make_node, link):
    graph, w1, t1, s1 = _chain(make_node, link)
    assert _ids(get_deployment_order(graph, [w1.id])) == [w1.id]
    assert _ids(get_deployment_order(graph, [w1.id, s1.id])) == [s1.id, w1.id]


def test_unconstrained_nodes_keep_request_order(make_node):
    graph = create_graph()
    x = graph.add_node(make_node("x"))
    y = graph.add_node(make_node("y"))
    assert _ids(get_deployment_order(graph, [y.id, x.id])) == [y.id, x.id]


def test_missing_and_duplicate_ids(make_node, link):
    graph, w1, t1, s1 = _chain(make_node, link)
    order = _ids(get_deployment_order(graph, [t1.id, "core/sys-tasks/ghost@1.0.0", t1.id, s1.id]))
    assert order == [s1.id, t1.id]


def test_cycle_is_broken_and_reported(make_node, link, caplog):
    graph = create_graph()
    a = graph.add_node(make_node("a"))
    b = graph.add_node(make_node("b"))
    link(graph, a, b)
    link(graph, b, a)

    with caplog.at_level(logging.INFO, logger="flowgraph.graph.resolver"):
        plan = plan_deployment(graph, [a.id, b.id])

    assert plan.ids == [b.id, a.id]
    assert plan.has_cycles
    assert [(e.source, e.target) for e in plan.skipped_edges] == [(b.id, a.id)]
    assert "Cycle" in caplog.text


def test_acyclic_plan_has_no_skipped_edges(make_node, link):
    graph, w1, t1, s1 = _chain(make_node, link)
    plan = plan_deployment(graph, [w1.id, t1.id, s1.id])
    assert plan.skipped_edges == []
    assert not plan.has_cycles


def test_find_cycles(make_node, link):
    graph = create_graph()
    a = graph.add_node(make_node("a"))
    b = graph.add_node(make_node("b"))
    c = graph.add_node(make_node("c"))
    d = graph.add_node(make_node("d"))
    link(graph, a, b)
    link(graph, b, c)
    link(graph, c, a)
    link(graph, d, d)

    assert find_cycles(graph) == [[a.id, b.id, c.id, a.id], [d.id, d.id]]


def test_find_cycles_on_acyclic_graph(make_node, link):
    graph, *_ = _chain(make_node, link)
    assert find_cycles(graph) == []
