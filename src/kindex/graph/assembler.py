"""Assemble the knowledge graph from session index items and approved units."""

from typing import Any, Iterable

from ..models import GraphEdge, GraphNode, KnowledgeGraph

EDGE_SHARED_TAGS = "sharedTags"
EDGE_RESUMED_FROM = "resumedFrom"
EDGE_RELATED_SESSION = "relatedSession"
EDGE_SOURCE_REF = "sourceRef"
EDGE_SESSION_REF = "sessionRef"

EDGE_TYPES = (EDGE_SHARED_TAGS, EDGE_RESUMED_FROM, EDGE_RELATED_SESSION, EDGE_SOURCE_REF, EDGE_SESSION_REF)


def session_node_id(session_id: str) -> str:
    return f"session:{session_id}"


def unit_node_id(unit_type: str, unit_id: str) -> str:
    return f"unit:{unit_type}:{unit_id}"


def _unique(tags: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(tags))


def session_node(item: dict[str, Any]) -> GraphNode:
    return GraphNode(
        id=session_node_id(item["id"]),
        entity_type="session",
        entity_id=item["id"],
        title=item.get("title") or "",
        tags=_unique(item.get("tags") or []),
        created_at=item.get("createdAt") or "",
        branch=item.get("branch"),
        resumed_from=item.get("resumedFrom"),
    )


def unit_node(unit: dict[str, Any]) -> GraphNode:
    return GraphNode(
        id=unit_node_id(unit["type"], unit["id"]),
        entity_type="unit",
        entity_id=unit["id"],
        title=unit.get("title") or "",
        tags=_unique(unit.get("tags") or []),
        created_at=unit.get("createdAt") or "",
        unit_subtype=unit["type"],
        applied_count=unit.get("appliedCount"),
        accepted_count=unit.get("acceptedCount"),
    )


def build_tag_edges(nodes: list[GraphNode]) -> list[GraphEdge]:
    """One undirected edge per node pair sharing at least one tag.

    Pairs are found through an inverted tag index, so nodes that share no
    tag are never compared. Pair keys are ordered so (a, b) and (b, a)
    accumulate into the same edge.
    """
    tag_to_nodes: dict[str, list[str]] = {}
    for node in nodes:
        for tag in node.tags:
            tag_to_nodes.setdefault(tag, []).append(node.id)

    edges: dict[tuple[str, str], GraphEdge] = {}
    for tag, node_ids in tag_to_nodes.items():
        for i in range(len(node_ids)):
            for j in range(i + 1, len(node_ids)):
                a, b = node_ids[i], node_ids[j]
                key = (a, b) if a < b else (b, a)
                edge = edges.get(key)
                if edge is None:
                    edges[key] = GraphEdge(
                        source=key[0],
                        target=key[1],
                        weight=1,
                        edge_type=EDGE_SHARED_TAGS,
                        directed=False,
                        shared_tags=[tag],
                    )
                else:
                    edge.weight += 1
                    edge.shared_tags.append(tag)
    return list(edges.values())


def _reference_edge(source: str, target: str, edge_type: str) -> GraphEdge:
    return GraphEdge(source=source, target=target, weight=1, edge_type=edge_type, directed=True)


def build_reference_edges(
    nodes: list[GraphNode],
    units: dict[str, dict[str, Any]],
) -> list[GraphEdge]:
    """Directed edges from explicit reference fields, referencing -> referenced.

    References to nodes outside the current node set are dropped silently.
    """
    node_ids = {node.id for node in nodes}
    edges: list[GraphEdge] = []

    def add(source: str, target: str, edge_type: str) -> None:
        if target in node_ids and target != source:
            edges.append(_reference_edge(source, target, edge_type))

    for node in nodes:
        if node.entity_type == "session":
            if node.resumed_from:
                add(node.id, session_node_id(node.resumed_from), EDGE_RESUMED_FROM)
            continue

        unit = units.get(node.id)
        if unit is None:
            continue
        for session_id in unit.get("relatedSessions") or []:
            add(node.id, session_node_id(session_id), EDGE_RELATED_SESSION)
        ref = unit.get("sourceRef")
        if ref:
            add(node.id, unit_node_id(ref["type"], ref["id"]), EDGE_SOURCE_REF)
        if unit.get("sourceId"):
            add(node.id, session_node_id(unit["sourceId"]), EDGE_SESSION_REF)

    return edges


def build_knowledge_graph(
    session_items: list[dict[str, Any]],
    units: list[dict[str, Any]],
) -> KnowledgeGraph:
    """Build nodes and both edge passes.

    Only sessions with a real title and units with status ``approved`` become
    nodes. Tag edges and reference edges between the same pair coexist.
    """
    nodes: list[GraphNode] = []
    seen: set[str] = set()
    units_by_node: dict[str, dict[str, Any]] = {}

    for item in session_items:
        if not item.get("hasSummary"):
            continue
        node = session_node(item)
        if node.id not in seen:
            seen.add(node.id)
            nodes.append(node)

    for unit in units:
        if unit.get("status") != "approved":
            continue
        node = unit_node(unit)
        if node.id not in seen:
            seen.add(node.id)
            nodes.append(node)
            units_by_node[node.id] = unit

    edges = build_tag_edges(nodes) + build_reference_edges(nodes, units_by_node)
    return KnowledgeGraph(nodes=nodes, edges=edges)
