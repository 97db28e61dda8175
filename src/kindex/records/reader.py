"""Tolerant record file reading."""

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def read_record(file_path: Path) -> dict[str, Any] | None:
    """Parse a record file as a JSON object.

    Returns None for unreadable, truncated, or non-object files so one bad
    file never aborts a listing.
    """
    try:
        text = Path(file_path).read_text(encoding="utf-8")
        data = json.loads(text)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.debug(f"Skipping unreadable record {file_path}: {e}")
        return None

    if not isinstance(data, dict):
        logger.debug(f"Skipping non-object record {file_path}")
        return None
    return data


def string_list(value: Any) -> list[str]:
    """Coerce a JSON value into a list of strings."""
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]
