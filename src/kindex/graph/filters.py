"""Composable graph filters: node predicates, edge weight, focus neighborhood."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from ..models import GraphEdge, GraphNode, KnowledgeGraph, timestamp_key, utc_now

ALL = "all"


@dataclass
class GraphFilters:
    query: str = ""
    entity_type: str = ALL
    tag: str = ALL
    branch: str = ALL
    recent_days: int = 0  # 0 means no lower bound
    min_edge_weight: int = 1
    focus_node_id: str | None = None
    focus_depth: int = 1

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GraphFilters":
        return cls(
            query=data.get("query") or "",
            entity_type=data.get("entityType") or ALL,
            tag=data.get("tag") or ALL,
            branch=data.get("branch") or ALL,
            recent_days=int(data.get("recentDays") or 0),
            min_edge_weight=int(data.get("minEdgeWeight") or 1),
            focus_node_id=data.get("focusNodeId") or None,
            focus_depth=int(data.get("focusDepth") or 1),
        )


def get_neighborhood(node_id: str, edges: list[GraphEdge], depth: int) -> set[str]:
    """Node ids within ``depth`` hops of ``node_id``, ignoring direction."""
    adjacency: dict[str, set[str]] = {}
    for edge in edges:
        adjacency.setdefault(edge.source, set()).add(edge.target)
        adjacency.setdefault(edge.target, set()).add(edge.source)

    visited = {node_id}
    frontier = {node_id}
    for _ in range(max(0, depth)):
        frontier = {n for current in frontier for n in adjacency.get(current, ())} - visited
        if not frontier:
            break
        visited |= frontier
    return visited


def _node_matches(node: GraphNode, filters: GraphFilters, query: str, min_created: float) -> bool:
    if filters.entity_type != ALL and node.entity_type != filters.entity_type:
        return False
    if filters.tag != ALL and filters.tag not in node.tags:
        return False
    if min_created > 0 and timestamp_key(node.created_at) < min_created:
        return False
    if filters.branch != ALL and (node.branch or "") != filters.branch:
        return False
    if not query:
        return True
    haystack = f"{node.title} {' '.join(node.tags)}".lower()
    return query in haystack


def filter_graph(graph: KnowledgeGraph, filters: GraphFilters, now: datetime | None = None) -> KnowledgeGraph:
    """Narrow the graph: node filters, then edges between survivors, then focus.

    Focus only applies when the focus node survived the node filters.
    """
    query = filters.query.strip().lower()
    min_created = 0.0
    if filters.recent_days > 0:
        min_created = ((now or utc_now()) - timedelta(days=filters.recent_days)).timestamp()

    nodes = [n for n in graph.nodes if _node_matches(n, filters, query, min_created)]
    node_ids = {n.id for n in nodes}
    edges = [
        e for e in graph.edges
        if e.source in node_ids and e.target in node_ids and e.weight >= filters.min_edge_weight
    ]

    if filters.focus_node_id and filters.focus_node_id in node_ids:
        neighborhood = get_neighborhood(filters.focus_node_id, edges, filters.focus_depth)
        nodes = [n for n in nodes if n.id in neighborhood]
        edges = [e for e in edges if e.source in neighborhood and e.target in neighborhood]

    return KnowledgeGraph(nodes=nodes, edges=edges)
