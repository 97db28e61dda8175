"""Tag co-occurrence network and tag frequency over session index items."""

from typing import Any, Iterable

TOP_TAGS_LIMIT = 20


def _record_tags(item: dict[str, Any]) -> list[str]:
    return list(dict.fromkeys(item.get("tags") or []))


def build_tag_network(session_items: Iterable[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    """Tags as nodes, weighted by how many sessions carry both ends.

    Nodes are ``{id, count}`` in first-seen order; edges are
    ``{source, target, weight}`` with source < target.
    """
    counts: dict[str, int] = {}
    pairs: dict[tuple[str, str], int] = {}

    for item in session_items:
        tags = _record_tags(item)
        for tag in tags:
            counts[tag] = counts.get(tag, 0) + 1
        for i in range(len(tags)):
            for j in range(i + 1, len(tags)):
                key = tuple(sorted((tags[i], tags[j])))
                pairs[key] = pairs.get(key, 0) + 1

    return {
        "nodes": [{"id": tag, "count": count} for tag, count in counts.items()],
        "edges": [{"source": a, "target": b, "weight": w} for (a, b), w in pairs.items()],
    }


def top_session_tags(session_items: Iterable[dict[str, Any]], limit: int = TOP_TAGS_LIMIT) -> list[dict[str, Any]]:
    """Most used tags as ``{name, count}``, highest first; ties keep first-seen order."""
    counts: dict[str, int] = {}
    for item in session_items:
        for tag in _record_tags(item):
            counts[tag] = counts.get(tag, 0) + 1
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return [{"name": name, "count": count} for name, count in ranked[:max(0, limit)]]
