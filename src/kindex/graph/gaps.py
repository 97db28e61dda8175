"""Detect sparsely connected pairs of sizeable clusters."""

from collections import Counter
from typing import Iterable

import numpy as np

from ..models import ClusterStats, GraphEdge, GraphNode, StructuralGap

GAP_DENSITY_THRESHOLD = 0.05
MIN_GAP_CLUSTER_SIZE = 3
MAX_GAPS = 3
GAP_TOP_TAGS = 3


def top_tags(nodes: Iterable[GraphNode], limit: int = GAP_TOP_TAGS) -> list[str]:
    """Most frequent tags; ties keep first-seen order."""
    counts: Counter[str] = Counter()
    for node in nodes:
        counts.update(node.tags)
    return [tag for tag, _ in counts.most_common(limit)]


def compute_structural_gaps(
    nodes: list[GraphNode],
    edges: Iterable[GraphEdge],
    stats: ClusterStats,
    threshold: float = GAP_DENSITY_THRESHOLD,
    min_cluster_size: int = MIN_GAP_CLUSTER_SIZE,
    max_gaps: int = MAX_GAPS,
    tag_limit: int = GAP_TOP_TAGS,
) -> list[StructuralGap]:
    """Flag cluster pairs whose cross-edge density is below ``threshold``.

    Only clusters with at least ``min_cluster_size`` members are considered.
    Density is ``actual / (size_a * size_b)``; the comparison is strict, so a
    pair sitting exactly on the threshold is not a gap. Results are ordered by
    possible edges (largest first) and capped at ``max_gaps``.
    """
    candidates = sorted(cid for cid, size in stats.cluster_sizes.items() if size >= min_cluster_size)
    if len(candidates) < 2:
        return []

    position = {cid: i for i, cid in enumerate(candidates)}
    sizes = np.array([stats.cluster_sizes[cid] for cid in candidates], dtype=np.int64)

    src, tgt = [], []
    for edge in edges:
        a = position.get(stats.cluster_by_node.get(edge.source, -1))
        b = position.get(stats.cluster_by_node.get(edge.target, -1))
        if a is not None and b is not None and a != b:
            src.append(min(a, b))
            tgt.append(max(a, b))

    cross = np.zeros((len(candidates), len(candidates)), dtype=np.int64)
    if src:
        np.add.at(cross, (np.array(src), np.array(tgt)), 1)
    possible = np.outer(sizes, sizes)

    members: dict[int, list[GraphNode]] = {}
    for node in nodes:
        cid = stats.cluster_by_node.get(node.id)
        if cid is not None:
            members.setdefault(cid, []).append(node)

    gaps = []
    rows, cols = np.triu_indices(len(candidates), k=1)
    for i, j in zip(rows.tolist(), cols.tolist()):
        actual = int(cross[i, j])
        possible_edges = int(possible[i, j])
        if possible_edges > 0 and actual / possible_edges < threshold:
            a, b = candidates[i], candidates[j]
            gaps.append(StructuralGap(
                cluster_a=a,
                cluster_b=b,
                tags_a=top_tags(members.get(a, []), tag_limit),
                tags_b=top_tags(members.get(b, []), tag_limit),
                actual_edges=actual,
                possible_edges=possible_edges,
            ))

    gaps.sort(key=lambda g: g.possible_edges, reverse=True)
    return gaps[:max_gaps]
