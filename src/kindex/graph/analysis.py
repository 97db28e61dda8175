"""Derived graph metrics and render attributes for the filtered graph."""

from datetime import datetime
from typing import Any

from ..models import ClusterStats, GraphEdge, GraphNode, KnowledgeGraph
from .clusters import compute_cluster_stats
from .filters import GraphFilters, filter_graph
from .gaps import (
    GAP_DENSITY_THRESHOLD,
    GAP_TOP_TAGS,
    MAX_GAPS,
    MIN_GAP_CLUSTER_SIZE,
    compute_structural_gaps,
)

TYPE_COLORS = {
    "session": "#40513B",
    "decision": "#628141",
    "pattern": "#2D8B7A",
    "rule": "#E67E22",
    "unknown": "#6b7280",
}

CLUSTER_COLORS = [
    "#f97316", "#10b981", "#3b82f6", "#e11d48", "#8b5cf6",
    "#14b8a6", "#f59e0b", "#6366f1", "#06b6d4", "#84cc16",
]

CENTRAL_NODE_COUNT = 5


def tag_counts(nodes: list[GraphNode]) -> list[tuple[str, int]]:
    counts: dict[str, int] = {}
    for node in nodes:
        for tag in node.tags:
            counts[tag] = counts.get(tag, 0) + 1
    return sorted(counts.items(), key=lambda kv: kv[1], reverse=True)


def max_edge_weight(edges: list[GraphEdge]) -> int:
    return max((e.weight for e in edges), default=1) or 1


def node_degrees(nodes: list[GraphNode], edges: list[GraphEdge]) -> dict[str, int]:
    degree = {node.id: 0 for node in nodes}
    for edge in edges:
        degree[edge.source] = degree.get(edge.source, 0) + 1
        degree[edge.target] = degree.get(edge.target, 0) + 1
    return degree


def graph_density(node_count: int, edge_count: int) -> float:
    if node_count <= 1:
        return 0.0
    return (2 * edge_count) / (node_count * (node_count - 1))


def node_color(node: GraphNode, cluster_id: int, color_mode: str) -> str:
    if color_mode == "cluster":
        return CLUSTER_COLORS[(cluster_id - 1) % len(CLUSTER_COLORS)]
    return TYPE_COLORS.get(node.unit_subtype or node.entity_type, TYPE_COLORS["unknown"])


def render_nodes(
    nodes: list[GraphNode],
    degree: dict[str, int],
    stats: ClusterStats,
    color_mode: str = "type",
) -> list[dict[str, Any]]:
    rendered = []
    for node in nodes:
        cluster_id = stats.cluster_by_node.get(node.id, 1)
        d = degree.get(node.id, 0)
        rendered.append({
            **node.to_dict(),
            "cluster": cluster_id,
            "color": node_color(node, cluster_id, color_mode),
            "val": max(4.0, min(14.0, 4 + d * 1.2)),
        })
    return rendered


def render_links(edges: list[GraphEdge]) -> list[dict[str, Any]]:
    return [
        {
            "source": e.source,
            "target": e.target,
            "value": e.weight,
            "sharedTags": list(e.shared_tags),
            "edgeType": e.edge_type,
            "directed": e.directed,
        }
        for e in edges
    ]


def analyze_graph(
    graph: KnowledgeGraph,
    filters: GraphFilters | None = None,
    graph_config: dict[str, Any] | None = None,
    color_mode: str = "type",
    now: datetime | None = None,
) -> dict[str, Any]:
    """Filter the graph, cluster it, find gaps, and derive render attributes."""
    cfg = graph_config or {}
    filtered = filter_graph(graph, filters or GraphFilters(), now=now)

    stats = compute_cluster_stats(filtered.nodes, filtered.edges, cfg.get("cluster_edge_types"))
    gaps = compute_structural_gaps(
        filtered.nodes,
        filtered.edges,
        stats,
        threshold=cfg.get("gap_density_threshold", GAP_DENSITY_THRESHOLD),
        min_cluster_size=cfg.get("min_gap_cluster_size", MIN_GAP_CLUSTER_SIZE),
        max_gaps=cfg.get("max_gaps", MAX_GAPS),
        tag_limit=cfg.get("gap_top_tags", GAP_TOP_TAGS),
    )
    degree = node_degrees(filtered.nodes, filtered.edges)
    central = sorted(filtered.nodes, key=lambda n: degree.get(n.id, 0), reverse=True)[:CENTRAL_NODE_COUNT]

    return {
        "graph": filtered,
        "clusterStats": stats,
        "structuralGaps": gaps,
        "nodes": render_nodes(filtered.nodes, degree, stats, color_mode),
        "links": render_links(filtered.edges),
        "tagCounts": tag_counts(graph.nodes),
        "maxEdgeWeight": max_edge_weight(graph.edges),
        "nodeDegree": degree,
        "centralNodes": [{"node": n, "degree": degree.get(n.id, 0)} for n in central],
        "graphDensity": graph_density(len(filtered.nodes), len(filtered.edges)),
        "largestClusterSize": max(stats.cluster_sizes.values(), default=0),
    }
