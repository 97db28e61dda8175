"""Tests for graph filtering and analysis."""

from datetime import datetime, timezone

from kindex.graph.analysis import analyze_graph, graph_density
from kindex.graph.filters import GraphFilters, filter_graph, get_neighborhood
from kindex.models import GraphEdge, GraphNode, KnowledgeGraph

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _node(id: str, tags: list[str], created_at: str = "2026-03-01T00:00:00Z", entity_type: str = "session",
          title: str = None, branch: str = "main") -> GraphNode:
    return GraphNode(
        id=id,
        entity_type=entity_type,
        entity_id=id,
        title=title or id,
        tags=tags,
        created_at=created_at,
        unit_subtype="decision" if entity_type == "unit" else None,
        branch=branch if entity_type == "session" else None,
    )


def _edge(a: str, b: str, weight: int = 1) -> GraphEdge:
    return GraphEdge(source=a, target=b, weight=weight, edge_type="sharedTags", directed=False,
                     shared_tags=[f"t{i}" for i in range(weight)])


def _sample_graph() -> KnowledgeGraph:
    nodes = [
        _node("a", ["auth", "api"], title="Login flow"),
        _node("b", ["auth"], created_at="2026-01-01T00:00:00Z"),
        _node("c", ["api"], entity_type="unit", title="Use tokens"),
        _node("d", ["ui"], branch="feature/x"),
        _node("e", ["ui"]),
    ]
    edges = [_edge("a", "b", 1), _edge("a", "c", 2), _edge("b", "c", 1), _edge("c", "d", 1), _edge("d", "e", 3)]
    return KnowledgeGraph(nodes=nodes, edges=edges)


def _ids(graph: KnowledgeGraph) -> list[str]:
    return [n.id for n in graph.nodes]


def test_no_filters_is_identity():
    graph = _sample_graph()
    filtered = filter_graph(graph, GraphFilters(), now=NOW)
    assert _ids(filtered) == _ids(graph)
    assert len(filtered.edges) == len(graph.edges)


def test_search_matches_title_or_tags():
    graph = _sample_graph()
    assert _ids(filter_graph(graph, GraphFilters(query="LOGIN"), now=NOW)) == ["a"]
    assert _ids(filter_graph(graph, GraphFilters(query="api"), now=NOW)) == ["a", "c"]
    assert _ids(filter_graph(graph, GraphFilters(query="   "), now=NOW)) == ["a", "b", "c", "d", "e"]


def test_entity_tag_and_branch_filters():
    graph = _sample_graph()
    assert _ids(filter_graph(graph, GraphFilters(entity_type="unit"), now=NOW)) == ["c"]
    assert _ids(filter_graph(graph, GraphFilters(tag="auth"), now=NOW)) == ["a", "b"]
    assert _ids(filter_graph(graph, GraphFilters(branch="feature/x"), now=NOW)) == ["d"]


def test_recent_days_drops_old_nodes():
    filtered = filter_graph(_sample_graph(), GraphFilters(recent_days=30), now=NOW)
    assert "b" not in _ids(filtered)
    assert all("b" not in (e.source, e.target) for e in filtered.edges)


def test_edges_need_both_endpoints_and_min_weight():
    graph = _sample_graph()
    filtered = filter_graph(graph, GraphFilters(tag="auth"), now=NOW)
    assert [(e.source, e.target) for e in filtered.edges] == [("a", "b")]

    heavy = filter_graph(graph, GraphFilters(min_edge_weight=2), now=NOW)
    assert [(e.source, e.target) for e in heavy.edges] == [("a", "c"), ("d", "e")]
    assert len(heavy.nodes) == 5


def test_focus_neighborhood_by_depth():
    graph = _sample_graph()
    one_hop = filter_graph(graph, GraphFilters(focus_node_id="a", focus_depth=1), now=NOW)
    assert sorted(_ids(one_hop)) == ["a", "b", "c"]
    assert all(e.source in {"a", "b", "c"} and e.target in {"a", "b", "c"} for e in one_hop.edges)

    two_hops = filter_graph(graph, GraphFilters(focus_node_id="a", focus_depth=2), now=NOW)
    assert sorted(_ids(two_hops)) == ["a", "b", "c", "d"]


def test_focus_ignored_when_focus_node_filtered_out():
    graph = _sample_graph()
    filtered = filter_graph(graph, GraphFilters(tag="ui", focus_node_id="a"), now=NOW)
    assert _ids(filtered) == ["d", "e"]


def test_neighborhood_ignores_direction():
    edges = [GraphEdge(source="x", target="y", weight=1, edge_type="resumedFrom", directed=True)]
    assert get_neighborhood("y", edges, 1) == {"x", "y"}
    assert get_neighborhood("y", edges, 0) == {"y"}


def test_filters_from_dict():
    filters = GraphFilters.from_dict({"query": "auth", "entityType": "unit", "minEdgeWeight": "2", "focusDepth": 3})
    assert filters.entity_type == "unit"
    assert filters.min_edge_weight == 2
    assert filters.focus_depth == 3
    assert filters.tag == "all"


def test_analyze_graph_outputs():
    analysis = analyze_graph(_sample_graph(), now=NOW)
    assert analysis["clusterStats"].total_clusters == 1
    assert analysis["largestClusterSize"] == 5
    assert analysis["maxEdgeWeight"] == 3
    assert analysis["nodeDegree"]["c"] == 3
    assert analysis["centralNodes"][0]["node"].id == "c"
    assert analysis["graphDensity"] == graph_density(5, 5) == 0.5
    assert analysis["structuralGaps"] == []

    by_id = {n["id"]: n for n in analysis["nodes"]}
    assert by_id["c"]["val"] == 4 + 3 * 1.2
    assert by_id["c"]["color"] == "#628141"
    assert {link["value"] for link in analysis["links"]} == {1, 2, 3}


def test_analyze_graph_cluster_colors():
    analysis = analyze_graph(_sample_graph(), GraphFilters(tag="ui"), color_mode="cluster", now=NOW)
    assert {n["color"] for n in analysis["nodes"]} == {"#f97316"}
    # Tag counts and max weight describe the unfiltered graph.
    assert dict(analysis["tagCounts"])["auth"] == 2
    assert analysis["maxEdgeWeight"] == 3
