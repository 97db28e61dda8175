"""Data models used throughout kindex."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

INDEX_VERSION = 1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a trailing Z."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string. Naive values are taken as UTC."""
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def timestamp_key(value: Any) -> float:
    """Sortable epoch seconds; unparseable values sort as the epoch."""
    parsed = parse_timestamp(value)
    return parsed.timestamp() if parsed else 0.0


@dataclass(frozen=True, order=True)
class Partition:
    """One (year, month) directory of a record kind."""
    year: str
    month: str

    @property
    def key(self) -> str:
        return f"{self.year}/{self.month}"


@dataclass
class MonthIndex:
    """Derived listing for one partition (or a merged window of partitions)."""
    updated_at: str
    items: list[dict[str, Any]] = field(default_factory=list)
    version: int = INDEX_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "updatedAt": self.updated_at, "items": self.items}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MonthIndex":
        items = data.get("items")
        return cls(
            version=data.get("version", INDEX_VERSION),
            updated_at=data.get("updatedAt") or "",
            items=items if isinstance(items, list) else [],
        )


@dataclass
class GraphNode:
    """A session or approved knowledge unit in the graph."""
    id: str
    entity_type: str  # "session" or "unit"
    entity_id: str
    title: str
    tags: list[str]
    created_at: str
    unit_subtype: str | None = None  # decision, pattern, rule
    branch: str | None = None
    resumed_from: str | None = None
    applied_count: int | None = None
    accepted_count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "title": self.title,
            "tags": list(self.tags),
            "createdAt": self.created_at,
            "unitSubtype": self.unit_subtype,
            "branch": self.branch,
            "resumedFrom": self.resumed_from,
            "appliedCount": self.applied_count,
            "acceptedCount": self.accepted_count,
        }


@dataclass
class GraphEdge:
    """A weighted relationship between two nodes."""
    source: str
    target: str
    weight: int
    edge_type: str
    directed: bool
    shared_tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "weight": self.weight,
            "sharedTags": list(self.shared_tags),
            "edgeType": self.edge_type,
            "directed": self.directed,
        }


@dataclass
class KnowledgeGraph:
    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


@dataclass
class ClusterStats:
    """Connected-component assignment for a node set."""
    cluster_by_node: dict[str, int]
    cluster_sizes: dict[int, int]
    total_clusters: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "clusterByNode": dict(self.cluster_by_node),
            "clusterSizes": {str(k): v for k, v in self.cluster_sizes.items()},
            "totalClusters": self.total_clusters,
        }


@dataclass
class StructuralGap:
    """A pair of sizeable clusters with anomalously few cross edges."""
    cluster_a: int
    cluster_b: int
    tags_a: list[str]
    tags_b: list[str]
    actual_edges: int
    possible_edges: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "clusterA": self.cluster_a,
            "clusterB": self.cluster_b,
            "tagsA": list(self.tags_a),
            "tagsB": list(self.tags_b),
            "actualEdges": self.actual_edges,
            "possibleEdges": self.possible_edges,
        }
