"""Collect knowledge units (decisions, patterns, rules) into one listing.

Units come from three places under the data path:

- ``decisions/YYYY/MM/*.json``: a single decision object, or ``{"items": [...]}``
- ``patterns/**/*.json``: ``{"items": [...]}`` or ``{"patterns": [...]}``
- ``rules/dev-rules.json`` and ``rules/review-guidelines.json``: ``{"items": [...]}``
"""

import logging
from pathlib import Path
from typing import Any

from ..records.reader import read_record, string_list
from ..records.scanner import list_json_files, list_record_files

logger = logging.getLogger(__name__)

UNIT_STATUSES = ("draft", "approved", "rejected")
RULE_FILES = ("dev-rules", "review-guidelines")


def _text(entry: dict[str, Any], *keys: str, default: str = "") -> str:
    for key in keys:
        if entry.get(key):
            return str(entry[key])
    return default


def _count(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def _base_unit(entry: dict[str, Any], unit_type: str, source_file: str, created_at: str) -> dict[str, Any]:
    unit_id = str(entry["id"])
    status = entry.get("status")
    return {
        "id": unit_id,
        "type": unit_type,
        "title": "",
        "tags": [],
        "status": status if status in UNIT_STATUSES else "draft",
        "sourceFile": source_file,
        "createdAt": created_at,
        "updatedAt": _text(entry, "updatedAt") or None,
        "relatedSessions": [],
        "sourceRef": None,
        "sourceId": None,
        "appliedCount": None,
        "acceptedCount": None,
    }


def _entries(doc: dict[str, Any], *list_keys: str) -> list[dict[str, Any]]:
    for key in list_keys:
        value = doc.get(key)
        if isinstance(value, list):
            return [e for e in value if isinstance(e, dict) and e.get("id")]
    return []


def collect_decision_units(decisions_dir: Path) -> list[dict[str, Any]]:
    units = []
    for file_path in list_record_files(decisions_dir):
        doc = read_record(file_path)
        if doc is None:
            continue
        entries = _entries(doc, "items")
        if not entries and doc.get("id"):
            entries = [doc]

        for entry in entries:
            unit = _base_unit(entry, "decision", file_path.stem, _text(entry, "createdAt") or _text(doc, "createdAt"))
            unit["title"] = _text(entry, "title", "text", default=unit["id"])
            unit["tags"] = string_list(entry.get("tags"))
            unit["relatedSessions"] = string_list(entry.get("relatedSessions"))
            units.append(unit)
    return units


def collect_pattern_units(patterns_dir: Path) -> list[dict[str, Any]]:
    units = []
    for file_path in list_json_files(patterns_dir):
        doc = read_record(file_path)
        if doc is None:
            continue
        source_name = file_path.stem
        for entry in _entries(doc, "items", "patterns"):
            unit = _base_unit(entry, "pattern", source_name, _text(entry, "createdAt"))
            unit["title"] = _text(entry, "title", "errorPattern", "description", default=unit["id"])
            unit["tags"] = string_list(entry["tags"]) if isinstance(entry.get("tags"), list) else [source_name]
            unit["sourceId"] = _text(entry, "sourceId") or None
            units.append(unit)
    return units


def collect_rule_units(rules_dir: Path) -> list[dict[str, Any]]:
    units = []
    for rule_file in RULE_FILES:
        doc = read_record(rules_dir / f"{rule_file}.json")
        if doc is None:
            continue
        for entry in _entries(doc, "items"):
            unit = _base_unit(entry, "rule", rule_file, _text(entry, "createdAt") or _text(doc, "createdAt"))
            unit["title"] = _text(entry, "text", "title", "rule", default=unit["id"])
            unit["tags"] = string_list(entry["tags"]) if isinstance(entry.get("tags"), list) else [rule_file]
            ref = entry.get("sourceRef")
            if isinstance(ref, dict) and ref.get("type") and ref.get("id"):
                unit["sourceRef"] = {"type": str(ref["type"]), "id": str(ref["id"])}
            unit["appliedCount"] = _count(entry.get("appliedCount"))
            unit["acceptedCount"] = _count(entry.get("acceptedCount"))
            units.append(unit)
    return units


def collect_units(data_path: str | Path) -> list[dict[str, Any]]:
    """Every unit across decisions, patterns, and rules, in that order."""
    root = Path(data_path)
    units = (
        collect_decision_units(root / "decisions")
        + collect_pattern_units(root / "patterns")
        + collect_rule_units(root / "rules")
    )
    logger.debug(f"Collected {len(units)} unit(s) from {root}")
    return units
