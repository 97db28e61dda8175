"""Request-level operations: listings, the knowledge graph, index maintenance.

Each call does its own scan/rebuild/assemble work; nothing is shared between
calls except the on-disk index cache.
"""

from typing import Any

from .graph.analysis import analyze_graph
from .graph.assembler import build_knowledge_graph
from .graph.filters import GraphFilters
from .graph.tags import TOP_TAGS_LIMIT, build_tag_network, top_session_tags
from .index.manager import SCOPE_ALL, IndexManager
from .models import KnowledgeGraph
from .query.listing import ListParams, list_decisions, list_sessions, parse_list_params
from .storage.base import IndexStoreBase
from .units.collector import collect_units


class KnowledgeService:
    """Entry point used by the CLI (and any HTTP layer in front of it)."""

    def __init__(self, config: dict[str, Any], store: IndexStoreBase | None = None):
        self.config = config
        self.manager = IndexManager.from_config(config, store)

    def parse_params(self, query: dict[str, Any]) -> ListParams:
        listing = self.config.get("listing", {})
        return parse_list_params(
            query,
            default_limit=listing.get("default_limit", 20),
            max_limit=listing.get("max_limit", 100),
        )

    def list_sessions(self, query: dict[str, Any] | None = None) -> dict[str, Any]:
        return list_sessions(self.manager, self.parse_params(query or {}))

    def list_decisions(self, query: dict[str, Any] | None = None) -> dict[str, Any]:
        return list_decisions(self.manager, self.parse_params(query or {}))

    def get_knowledge_graph(self) -> KnowledgeGraph:
        """All titled sessions plus approved units, with tag and reference edges."""
        sessions = self.manager.read_merged("sessions", SCOPE_ALL).items
        units = collect_units(self.config["data_path"])
        return build_knowledge_graph(sessions, units)

    def analyze_knowledge_graph(
        self,
        filters: GraphFilters | None = None,
        color_mode: str = "type",
    ) -> dict[str, Any]:
        graph = self.get_knowledge_graph()
        return analyze_graph(graph, filters, self.config.get("graph", {}), color_mode=color_mode)

    def get_tag_network(self) -> dict[str, list[dict[str, Any]]]:
        return build_tag_network(self.manager.read_merged("sessions", SCOPE_ALL).items)

    def get_tag_stats(self, limit: int = TOP_TAGS_LIMIT) -> list[dict[str, Any]]:
        return top_session_tags(self.manager.read_merged("sessions", SCOPE_ALL).items, limit)

    def get_index_status(self) -> dict[str, dict[str, Any]]:
        return self.manager.status()

    def rebuild_all_indexes(self) -> dict[str, dict[str, Any]]:
        return self.manager.rebuild_all().to_dict()
