"""Filtered, paginated listings over the merged month indexes."""

import math
from dataclasses import dataclass
from typing import Any

from ..index.manager import SCOPE_ALL, SCOPE_RECENT, IndexManager

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@dataclass
class ListParams:
    page: int = 1
    limit: int = DEFAULT_LIMIT
    tag: str | None = None
    type: str | None = None
    project: str | None = None
    search: str | None = None
    show_untitled: bool = False
    all_months: bool = False

    @property
    def scope(self) -> str:
        return SCOPE_ALL if self.all_months else SCOPE_RECENT


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_list_params(
    query: dict[str, Any],
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> ListParams:
    """Build ListParams from raw query values; page >= 1, limit in [1, max_limit]."""
    return ListParams(
        page=max(1, _to_int(query.get("page"), 1)),
        limit=min(max_limit, max(1, _to_int(query.get("limit"), default_limit))),
        tag=query.get("tag") or None,
        type=query.get("type") or None,
        project=query.get("project") or None,
        search=query.get("search") or None,
        show_untitled=str(query.get("showUntitled", "")).lower() == "true",
        all_months=str(query.get("allMonths", "")).lower() == "true",
    )


def paginate(items: list[Any], page: int, limit: int) -> dict[str, Any]:
    """Slice one page out of ``items`` with the pagination envelope."""
    total = len(items)
    total_pages = math.ceil(total / limit) if limit > 0 else 0
    start = (page - 1) * limit
    return {
        "data": items[start:start + limit],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": total_pages,
            "hasNext": page < total_pages,
            "hasPrev": page > 1,
        },
    }


def _matches_project(item: dict[str, Any], project: str) -> bool:
    repository = item.get("repository") or ""
    return (
        item.get("projectName") == project
        or repository == project
        or repository.endswith(f"/{project}")
    )


def filter_sessions(items: list[dict[str, Any]], params: ListParams) -> list[dict[str, Any]]:
    filtered = items
    if not params.show_untitled:
        filtered = [s for s in filtered if s.get("hasSummary")]
    if params.tag:
        filtered = [s for s in filtered if params.tag in (s.get("tags") or [])]
    if params.type:
        filtered = [s for s in filtered if s.get("sessionType") == params.type]
    if params.project:
        filtered = [s for s in filtered if _matches_project(s, params.project)]
    if params.search:
        query = params.search.lower()
        filtered = [
            s for s in filtered
            if query in (s.get("title") or "").lower() or query in (s.get("goal") or "").lower()
        ]
    return filtered


def filter_decisions(items: list[dict[str, Any]], params: ListParams) -> list[dict[str, Any]]:
    filtered = items
    if params.tag:
        filtered = [d for d in filtered if params.tag in (d.get("tags") or [])]
    if params.search:
        query = params.search.lower()
        filtered = [d for d in filtered if query in (d.get("title") or "").lower()]
    return filtered


def list_sessions(manager: IndexManager, params: ListParams) -> dict[str, Any]:
    index = manager.read_merged("sessions", params.scope)
    return paginate(filter_sessions(index.items, params), params.page, params.limit)


def list_decisions(manager: IndexManager, params: ListParams) -> dict[str, Any]:
    index = manager.read_merged("decisions", params.scope)
    return paginate(filter_decisions(index.items, params), params.page, params.limit)
