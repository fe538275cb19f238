"""
flowgraph CLI - build and compare component dependency graphs
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from flowgraph.settings import settings

console = Console()


def _configure_logging() -> None:
    level = (settings.log_level or "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _load(path: str):
    from flowgraph.graph import load_graph

    try:
        return load_graph(path)
    except (OSError, ValueError, KeyError) as exc:
        raise click.ClickException(f"Cannot load graph {path}: {exc}") from exc


def _environment(env_id: str | None, workspace: str):
    from flowgraph.config import ConfigError, ConfigManager

    manager = ConfigManager()
    try:
        manager.load(workspace_root=workspace)
        return manager.require_environment(env_id)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


def _stats_table(title: str, graph) -> Table:
    stats = graph.get_graph_stats()
    table = Table(title=title)
    table.add_column("Type", style="cyan")
    table.add_column("Nodes", justify="right")
    for t, n in sorted(stats.nodes_by_type.items()):
        table.add_row(t, str(n))
    table.add_row("[bold]total[/bold]", f"[bold]{stats.node_count}[/bold]")
    table.caption = f"{stats.edge_count} edges"
    return table


@click.group()
def cli():
    """flowgraph - component dependency graphs"""
    _configure_logging()


@cli.command()
def version():
    """Print the installed version"""
    from flowgraph import __version__

    click.echo(__version__)


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False))
@click.option("--out", type=click.Path(dir_okay=False), help="Save the graph as JSON")
def local(path, out):
    """Build the graph of a local component tree"""
    from flowgraph.builders import LocalGraphBuilder
    from flowgraph.graph import save_graph

    result = LocalGraphBuilder(settings).build_path(path)
    console.print(_stats_table(f"Local graph: {path}", result.graph))

    if result.unresolved:
        table = Table(title="Unresolved references")
        table.add_column("Component", style="cyan")
        table.add_column("References", style="red")
        table.add_column("Type", style="magenta")
        for u in result.unresolved:
            table.add_row(u.source, u.target, u.type.value)
        console.print(table)
    if result.skipped:
        console.print(f"[yellow]{len(result.skipped)} file(s) skipped[/yellow]")

    if out:
        save_graph(result.graph, out)
        console.print(f"[green]Saved to {out}[/green]")


@cli.command()
@click.option("--env", "env_id", default=None, help="Environment id (default: active environment)")
@click.option("--domain", default=None, help="Runtime domain (default: environment domain)")
@click.option("--workspace", default=".", type=click.Path(file_okay=False), help="Workspace root")
@click.option("--type", "types", multiple=True, help="Component type to fetch (repeatable)")
@click.option("--out", type=click.Path(dir_okay=False), help="Save the graph as JSON")
def runtime(env_id, domain, workspace, types, out):
    """Build the graph of what a runtime environment has deployed"""
    from flowgraph.adapters import VNextRuntimeAdapter
    from flowgraph.builders import RuntimeGraphBuilder
    from flowgraph.graph import save_graph
    from flowgraph.models import ComponentType

    env = _environment(env_id, workspace)
    try:
        include = [ComponentType(t) for t in types] or None
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    async def run():
        adapter = VNextRuntimeAdapter(timeout=settings.request_timeout)
        try:
            return await RuntimeGraphBuilder(adapter, settings).build(env, domain, include)
        finally:
            await adapter.aclose()

    result = asyncio.run(run())

    table = Table(title=f"Runtime fetch: {env.display_name}")
    table.add_column("Type", style="cyan")
    table.add_column("Status")
    table.add_column("Count", justify="right")
    table.add_column("Dropped", justify="right")
    table.add_column("Error", style="red", overflow="fold")
    for t, r in result.types.items():
        status = "[green]ok[/green]" if r.status == "ok" else "[red]failed[/red]"
        table.add_row(t.value, status, str(r.count), str(r.dropped), r.error or "")
    console.print(table)
    console.print(_stats_table("Runtime graph", result.graph))

    if out:
        save_graph(result.graph, out)
        console.print(f"[green]Saved to {out}[/green]")
    if not result.complete:
        raise click.ClickException("Runtime graph is incomplete")


@cli.command()
@click.option("--env", "env_id", default=None, help="Environment id (default: active environment)")
@click.option("--workspace", default=".", type=click.Path(file_okay=False), help="Workspace root")
def ping(env_id, workspace):
    """Check that a runtime environment is reachable"""
    from flowgraph.adapters import VNextRuntimeAdapter

    env = _environment(env_id, workspace)

    async def run():
        adapter = VNextRuntimeAdapter(timeout=settings.request_timeout)
        try:
            return await adapter.test_connection(env, env.domain)
        finally:
            await adapter.aclose()

    if not asyncio.run(run()):
        raise click.ClickException(f"{env.display_name} ({env.base_url}) is unreachable")
    console.print(f"[green]{env.display_name} ({env.base_url}) is reachable[/green]")


@cli.command()
@click.argument("local_graph", type=click.Path(exists=True, dir_okay=False))
@click.argument("runtime_graph", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print a machine-readable summary")
def diff(local_graph, runtime_graph, as_json):
    """Compare a saved local graph with a saved runtime graph"""
    from flowgraph.analysis import collect_violations, plan_changes
    from flowgraph.builders import unresolved_from_metadata

    local_g, runtime_g = _load(local_graph), _load(runtime_graph)
    try:
        unresolved = unresolved_from_metadata(local_g)
    except (KeyError, TypeError, ValueError) as exc:
        raise click.ClickException(f"Invalid unresolved references in {local_graph}: {exc}") from exc
    plan = plan_changes(local_g, runtime_g)
    report = collect_violations(local_g, runtime_g, plan.diff, unresolved)
    d = plan.diff

    if as_json:
        click.echo(
            json.dumps(
                {
                    "onlyLocal": d.only_local,
                    "onlyRuntime": d.only_runtime,
                    "apiDrift": d.api_drift,
                    "configDrift": d.config_drift,
                    "unchanged": d.unchanged,
                    "ranking": [{"id": e.id, "dependents": e.dependents} for e in plan.ranking],
                    "deploymentOrder": plan.deployment.ids,
                    "violations": [
                        {"kind": v.kind, "severity": v.severity, "message": v.message} for v in report.violations
                    ],
                },
                indent=2,
            )
        )
        return

    table = Table(title="Drift")
    table.add_column("Status", style="cyan")
    table.add_column("Count", justify="right")
    for label, ids in (
        ("only local (new)", d.only_local),
        ("only runtime", d.only_runtime),
        ("API drift", d.api_drift),
        ("config drift", d.config_drift),
        ("unchanged", d.unchanged),
    ):
        table.add_row(label, str(len(ids)))
    console.print(table)

    if plan.ranking:
        table = Table(title="Needs attention (by impact)")
        table.add_column("Component", style="cyan")
        table.add_column("Dependents", justify="right")
        for e in plan.ranking:
            table.add_row(e.id, str(e.dependents))
        console.print(table)

    if plan.deployment.order:
        console.print("[bold]Deployment order[/bold]")
        for i, node in enumerate(plan.deployment.order, 1):
            console.print(f"  {i}. {node.id}")
    for edge in plan.deployment.skipped_edges:
        console.print(f"[yellow]cycle: skipped {edge.source} -> {edge.target}[/yellow]")

    if report.violations:
        table = Table(title="Violations")
        table.add_column("Severity")
        table.add_column("Kind", style="magenta")
        table.add_column("Message", overflow="fold")
        colors = {"error": "red", "warning": "yellow", "info": "blue"}
        for v in report.violations:
            table.add_row(f"[{colors[v.severity]}]{v.severity}[/{colors[v.severity]}]", v.kind, v.message)
        console.print(table)


@cli.command()
@click.argument("graph_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("component_id")
def deps(graph_file, component_id):
    """List the transitive dependencies of a component"""
    from flowgraph.graph import get_transitive_dependencies

    graph = _load(graph_file)
    if not graph.has_node(component_id):
        raise click.ClickException(f"Unknown component {component_id}")

    nodes = get_transitive_dependencies(graph, component_id)
    if not nodes:
        console.print("[yellow]No dependencies[/yellow]")
        return
    table = Table(title=f"Dependencies of {component_id}")
    table.add_column("Component", style="cyan")
    table.add_column("Type", style="magenta")
    for n in nodes:
        table.add_row(n.id, n.type.value)
    console.print(table)


@cli.command()
@click.argument("graph_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("component_ids", nargs=-1, required=True)
def order(graph_file, component_ids):
    """Deployment order for a set of components"""
    from flowgraph.graph import plan_deployment

    plan = plan_deployment(_load(graph_file), component_ids)
    for i, node in enumerate(plan.order, 1):
        console.print(f"{i}. {node.id}")
    for edge in plan.skipped_edges:
        console.print(f"[yellow]cycle: skipped {edge.source} -> {edge.target}[/yellow]")


@cli.command()
@click.argument("graph_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("component_ids", nargs=-1, required=True)
@click.option("--max-depth", default=None, type=int, help="Stop after N levels of dependents")
def impact(graph_file, component_ids, max_depth):
    """Components affected by changing the given ones"""
    from flowgraph.analysis import estimate_deployment_risk, impact_cone

    graph = _load(graph_file)
    cone = impact_cone(graph, component_ids, max_depth=max_depth)
    risk = estimate_deployment_risk(graph, component_ids)

    table = Table(title="Impact cone")
    table.add_column("Depth", justify="right")
    table.add_column("Component", style="cyan")
    table.add_column("Path", overflow="fold")
    for p in cone.paths:
        table.add_row(str(p.depth), p.target, p.path_string)
    console.print(table)
    console.print(f"Affected: {cone.total_affected} | risk: [bold]{risk.risk}[/bold] ({risk.reason})")


if __name__ == "__main__":
    cli()
