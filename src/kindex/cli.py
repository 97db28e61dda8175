"""CLI entry point for kindex."""

import json
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .config import load_config, DEFAULT_CONFIG

console = Console()


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Log index rebuilds and skipped files")
@click.pass_context
def cli(ctx, config_path, verbose):
    """kindex - Month-partitioned record indexes and a knowledge graph."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


def _get_config(ctx) -> dict:
    return load_config(ctx.obj.get("config_path"))


def _get_service(ctx):
    from .service import KnowledgeService
    return KnowledgeService(_get_config(ctx))


@cli.command()
@click.option("--path", default=None, help="Custom data path")
@click.pass_context
def init(ctx, path):
    """Initialize the data directory layout and configuration."""
    import copy
    import yaml

    data_path = Path(path or DEFAULT_CONFIG["data_path"]).expanduser().resolve()
    console.print(f"[bold green]Initializing kindex at {data_path}[/]")

    for d in ["sessions", "decisions", "patterns", "rules", ".indexes"]:
        (data_path / d).mkdir(parents=True, exist_ok=True)

    config_file = data_path / "config.yaml"
    if not config_file.exists():
        cfg = copy.deepcopy(DEFAULT_CONFIG)
        cfg["data_path"] = str(data_path)
        header = (
            "# Index backend: filesystem (.indexes/ next to the records) or memory\n"
            "# Indexes older than index.max_age_seconds are rebuilt on read\n\n"
        )
        config_file.write_text(header + yaml.dump(cfg, default_flow_style=False, sort_keys=False))
        console.print(f"  Created config: {config_file}")

    console.print("[bold green]✓ kindex initialized![/]")
    console.print(f"  Run: kindex -c {config_file} index rebuild")


def _joined(values) -> str:
    return escape(", ".join(values or []))


def _listing_query(page, limit, tag, search, all_months, **extra) -> dict:
    query = {
        "page": page,
        "limit": limit,
        "tag": tag,
        "search": search,
        "allMonths": "true" if all_months else "false",
    }
    query.update(extra)
    return query


def _print_pagination(result: dict) -> None:
    p = result["pagination"]
    console.print(
        f"[dim]Page {p['page']}/{max(p['totalPages'], 1)} · {p['total']} item(s)"
        f"{' · more with --page ' + str(p['page'] + 1) if p['hasNext'] else ''}[/]"
    )


@cli.command()
@click.option("--page", default=1, help="Page number")
@click.option("--limit", type=int, default=None, help="Items per page (1-100, default from config)")
@click.option("--tag", default=None, help="Only sessions with this tag")
@click.option("--type", "session_type", default=None, help="Only this session type")
@click.option("--project", default=None, help="Project name or repository")
@click.option("--search", default=None, help="Substring of title or goal")
@click.option("--show-untitled", is_flag=True, help="Include sessions without a title")
@click.option("--all-months", is_flag=True, help="Search every month, not just recent ones")
@click.option("--json", "as_json", is_flag=True, help="Print the raw JSON envelope")
@click.pass_context
def sessions(ctx, page, limit, tag, session_type, project, search, show_untitled, all_months, as_json):
    """List sessions from the month indexes."""
    service = _get_service(ctx)
    result = service.list_sessions(_listing_query(
        page, limit, tag, search, all_months,
        type=session_type,
        project=project,
        showUntitled="true" if show_untitled else "false",
    ))

    if as_json:
        console.print_json(json.dumps(result))
        return
    if not result["data"]:
        console.print("[yellow]No sessions found.[/]")
        return

    table = Table(title="Sessions")
    table.add_column("Created", style="dim")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Type")
    table.add_column("Branch")
    table.add_column("Tags", max_width=40)

    for s in result["data"]:
        table.add_row(
            s["createdAt"][:10], escape(s["id"]), escape(s["title"]),
            escape(s.get("sessionType") or ""), escape(s.get("branch") or ""), _joined(s.get("tags")),
        )
    console.print(table)
    _print_pagination(result)


@cli.command()
@click.option("--page", default=1, help="Page number")
@click.option("--limit", type=int, default=None, help="Items per page (1-100, default from config)")
@click.option("--tag", default=None, help="Only decisions with this tag")
@click.option("--search", default=None, help="Substring of title")
@click.option("--all-months", is_flag=True, help="Search every month, not just recent ones")
@click.option("--json", "as_json", is_flag=True, help="Print the raw JSON envelope")
@click.pass_context
def decisions(ctx, page, limit, tag, search, all_months, as_json):
    """List decisions from the month indexes."""
    service = _get_service(ctx)
    result = service.list_decisions(_listing_query(page, limit, tag, search, all_months))

    if as_json:
        console.print_json(json.dumps(result))
        return
    if not result["data"]:
        console.print("[yellow]No decisions found.[/]")
        return

    table = Table(title="Decisions")
    table.add_column("Created", style="dim")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Tags", max_width=40)

    for d in result["data"]:
        table.add_row(d["createdAt"][:10], escape(d["id"]), escape(d["title"]), escape(d["status"]), _joined(d.get("tags")))
    console.print(table)
    _print_pagination(result)


def _analysis_payload(analysis: dict) -> dict:
    return {
        "nodes": analysis["nodes"],
        "links": analysis["links"],
        "clusterStats": analysis["clusterStats"].to_dict(),
        "structuralGaps": [g.to_dict() for g in analysis["structuralGaps"]],
        "tagCounts": analysis["tagCounts"],
        "maxEdgeWeight": analysis["maxEdgeWeight"],
        "centralNodes": [
            {"id": c["node"].id, "title": c["node"].title, "degree": c["degree"]}
            for c in analysis["centralNodes"]
        ],
        "graphDensity": analysis["graphDensity"],
        "largestClusterSize": analysis["largestClusterSize"],
    }


@cli.command()
@click.option("--query", "-q", default="", help="Substring of title or tags")
@click.option("--entity", type=click.Choice(["all", "session", "unit"]), default="all")
@click.option("--tag", default="all", help="Only nodes with this tag")
@click.option("--branch", default="all", help="Only nodes on this branch")
@click.option("--recent-days", default=0, help="Only nodes created in the last N days (0 = all)")
@click.option("--min-weight", default=1, help="Minimum edge weight")
@click.option("--focus", default=None, help="Node id to focus on (e.g. session:abc123)")
@click.option("--depth", default=1, help="Focus neighborhood depth in hops")
@click.option("--color-mode", type=click.Choice(["type", "cluster"]), default="type")
@click.option("--json", "as_json", is_flag=True, help="Print nodes, links, clusters and gaps as JSON")
@click.pass_context
def graph(ctx, query, entity, tag, branch, recent_days, min_weight, focus, depth, color_mode, as_json):
    """Build the knowledge graph, cluster it, and report structural gaps."""
    from .graph.filters import GraphFilters

    service = _get_service(ctx)
    filters = GraphFilters(
        query=query,
        entity_type=entity,
        tag=tag,
        branch=branch,
        recent_days=recent_days,
        min_edge_weight=min_weight,
        focus_node_id=focus,
        focus_depth=depth,
    )
    analysis = service.analyze_knowledge_graph(filters, color_mode=color_mode)

    if as_json:
        console.print_json(json.dumps(_analysis_payload(analysis)))
        return

    g = analysis["graph"]
    stats = analysis["clusterStats"]
    if not g.nodes:
        console.print("[yellow]Graph is empty. Save some titled sessions or approve some units.[/]")
        return

    console.print(f"\n[bold]🕸  Knowledge Graph[/]")
    console.print(f"  Nodes: {len(g.nodes)}   Edges: {len(g.edges)}")
    console.print(f"  Clusters: {stats.total_clusters}   Largest: {analysis['largestClusterSize']}")
    console.print(f"  Density: {analysis['graphDensity']:.4f}")

    table = Table(title="Central Nodes")
    table.add_column("Node", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Degree", justify="right", style="green")
    for c in analysis["centralNodes"]:
        table.add_row(escape(c["node"].id), escape(c["node"].title), str(c["degree"]))
    console.print(table)

    gaps = analysis["structuralGaps"]
    if not gaps:
        console.print("[dim]No structural gaps found.[/]")
        return

    table = Table(title="Structural Gaps")
    table.add_column("Clusters")
    table.add_column("Tags A", style="cyan")
    table.add_column("Tags B", style="cyan")
    table.add_column("Edges", justify="right", style="green")
    for gap in gaps:
        table.add_row(
            f"{gap.cluster_a} ↔ {gap.cluster_b}",
            _joined(gap.tags_a),
            _joined(gap.tags_b),
            f"{gap.actual_edges}/{gap.possible_edges}",
        )
    console.print(table)


@cli.command()
@click.option("--limit", default=20, help="Number of top tags to show")
@click.option("--network", is_flag=True, help="Show tag co-occurrence pairs instead of counts")
@click.option("--json", "as_json", is_flag=True, help="Print the raw JSON")
@click.pass_context
def tags(ctx, limit, network, as_json):
    """Session tag counts, or the tag co-occurrence network."""
    service = _get_service(ctx)

    if network:
        result = service.get_tag_network()
        if as_json:
            console.print_json(json.dumps(result))
            return
        if not result["edges"]:
            console.print("[yellow]No tags appear together in any session.[/]")
            return
        table = Table(title="Tag Co-occurrence")
        table.add_column("Tag", style="cyan")
        table.add_column("Tag", style="cyan")
        table.add_column("Sessions", justify="right", style="green")
        edges = sorted(result["edges"], key=lambda e: e["weight"], reverse=True)[:limit]
        for e in edges:
            table.add_row(escape(e["source"]), escape(e["target"]), str(e["weight"]))
        console.print(table)
        return

    result = service.get_tag_stats(limit)
    if as_json:
        console.print_json(json.dumps({"tags": result}))
        return
    if not result:
        console.print("[yellow]No tagged sessions found.[/]")
        return
    table = Table(title="Top Tags")
    table.add_column("Tag", style="cyan")
    table.add_column("Sessions", justify="right", style="green")
    for t in result:
        table.add_row(escape(t["name"]), str(t["count"]))
    console.print(table)


@cli.group()
def index():
    """Inspect and rebuild the derived month indexes."""


@index.command()
@click.pass_context
def status(ctx):
    """Show per-kind index freshness."""
    service = _get_service(ctx)
    result = service.get_index_status()

    table = Table(title="Index Status")
    table.add_column("Kind", style="cyan")
    table.add_column("Items", justify="right")
    table.add_column("Updated", style="dim")
    table.add_column("Stale")
    for kind, s in result.items():
        table.add_row(kind, str(s["itemCount"]), s["updatedAt"], "[red]yes[/]" if s["isStale"] else "[green]no[/]")
    console.print(table)


@index.command()
@click.pass_context
def rebuild(ctx):
    """Rebuild every month index from the record files."""
    from .index.manager import IndexRebuildError

    service = _get_service(ctx)
    console.print("[blue]Rebuilding indexes...[/]")
    try:
        result = service.rebuild_all_indexes()
    except IndexRebuildError as e:
        console.print(f"[red]✗ {escape(str(e))}[/]")
        for kind, year, month, err in e.failures:
            console.print(f"  [red]{kind}/{year}/{month}: {escape(str(err))}[/]")
        ctx.exit(1)

    console.print("[green]✓ Rebuild complete[/]")
    for kind, s in result.items():
        console.print(f"  {kind}: {s['itemCount']} item(s) in {s['partitionCount']} month(s)")


if __name__ == "__main__":
    cli()
