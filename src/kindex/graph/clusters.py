"""Connected components over the current node and edge set."""

from collections import deque
from typing import Iterable

from ..models import ClusterStats, GraphEdge, GraphNode


def build_adjacency(nodes: list[GraphNode], edges: Iterable[GraphEdge]) -> dict[str, set[str]]:
    """Undirected adjacency; edges with an endpoint outside ``nodes`` are ignored."""
    adjacency: dict[str, set[str]] = {node.id: set() for node in nodes}
    for edge in edges:
        if edge.source in adjacency and edge.target in adjacency:
            adjacency[edge.source].add(edge.target)
            adjacency[edge.target].add(edge.source)
    return adjacency


def compute_cluster_stats(
    nodes: list[GraphNode],
    edges: Iterable[GraphEdge],
    edge_types: Iterable[str] | None = None,
) -> ClusterStats:
    """Assign each node a cluster id (1..k) by breadth-first traversal.

    Direction is ignored. Traversal starts from nodes in list order, so
    cluster ids are deterministic for a given node order. ``edge_types``
    optionally restricts which edges connect nodes.
    """
    if edge_types is not None:
        allowed = set(edge_types)
        edges = [e for e in edges if e.edge_type in allowed]
    adjacency = build_adjacency(nodes, edges)

    cluster_by_node: dict[str, int] = {}
    cluster_sizes: dict[int, int] = {}
    cluster_id = 0

    for node in nodes:
        if node.id in cluster_by_node:
            continue
        cluster_id += 1
        cluster_by_node[node.id] = cluster_id
        queue = deque([node.id])
        size = 0

        while queue:
            current = queue.popleft()
            size += 1
            for neighbor in adjacency[current]:
                if neighbor not in cluster_by_node:
                    cluster_by_node[neighbor] = cluster_id
                    queue.append(neighbor)

        cluster_sizes[cluster_id] = size

    return ClusterStats(
        cluster_by_node=cluster_by_node,
        cluster_sizes=cluster_sizes,
        total_clusters=cluster_id,
    )
