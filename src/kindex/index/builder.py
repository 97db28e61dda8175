"""Build the derived index for one (kind, year, month) partition."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from ..models import MonthIndex, format_timestamp, timestamp_key, utc_now
from ..records.reader import read_record, string_list
from ..records.scanner import list_partition_files

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _optional_str(value: Any) -> str | None:
    return str(value) if value else None


def project_session(record: dict[str, Any], file_path: str) -> dict[str, Any]:
    """Session index item: listing fields only, never the interaction log."""
    summary = _as_dict(record.get("summary"))
    context = _as_dict(record.get("context"))
    user = _as_dict(context.get("user"))
    interactions = record.get("interactions")

    title = summary.get("title") or record.get("title") or ""
    title = str(title)

    return {
        "id": str(record["id"]),
        "title": title or UNTITLED,
        "goal": _optional_str(summary.get("goal") or record.get("goal")),
        "createdAt": str(record["createdAt"]),
        "tags": string_list(record.get("tags")),
        "sessionType": _optional_str(record.get("sessionType") or summary.get("sessionType")),
        "branch": _optional_str(context.get("branch")),
        "user": _optional_str(user.get("name")),
        "interactionCount": len(interactions) if isinstance(interactions, list) else 0,
        "filePath": file_path,
        "hasSummary": bool(title) and title != UNTITLED,
        "resumedFrom": _optional_str(record.get("resumedFrom")),
        "projectName": _optional_str(context.get("projectName")),
        "repository": _optional_str(context.get("repository")),
    }


def project_decision(record: dict[str, Any], file_path: str) -> dict[str, Any]:
    """Decision index item."""
    user = _as_dict(record.get("user"))
    return {
        "id": str(record["id"]),
        "title": str(record.get("title") or UNTITLED),
        "createdAt": str(record["createdAt"]),
        "updatedAt": _optional_str(record.get("updatedAt")),
        "tags": string_list(record.get("tags")),
        "status": str(record.get("status") or "active"),
        "user": _optional_str(user.get("name")),
        "filePath": file_path,
    }


PROJECTIONS: dict[str, Callable[[dict[str, Any], str], dict[str, Any]]] = {
    "sessions": project_session,
    "decisions": project_decision,
}

RECORD_KINDS = tuple(PROJECTIONS)


def get_projection(kind: str) -> Callable[[dict[str, Any], str], dict[str, Any]]:
    try:
        return PROJECTIONS[kind]
    except KeyError:
        raise ValueError(f"Unknown record kind: {kind}") from None


def sort_items(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Sort newest first. The sort is stable, so ties keep encounter order."""
    return sorted(items, key=lambda item: timestamp_key(item.get("createdAt")), reverse=True)


def build_month_index(
    data_path: str | Path,
    kind: str,
    year: str,
    month: str,
    now: datetime | None = None,
) -> MonthIndex:
    """Read every record file of one partition into a MonthIndex.

    Files that fail to parse, or lack an id or a createdAt, are skipped.
    A missing partition yields an index with zero items. Nothing is written.
    """
    project = get_projection(kind)
    kind_dir = Path(data_path) / kind
    files = list_partition_files(kind_dir, year, month)

    items = []
    skipped = 0
    for file_path in files:
        record = read_record(file_path)
        if record is None or not record.get("id") or not record.get("createdAt"):
            skipped += 1
            continue
        relative = file_path.relative_to(kind_dir).as_posix()
        items.append(project(record, relative))

    if skipped:
        logger.debug(f"Skipped {skipped} invalid {kind} file(s) in {year}/{month}")

    return MonthIndex(
        updated_at=format_timestamp(now or utc_now()),
        items=sort_items(items),
    )
