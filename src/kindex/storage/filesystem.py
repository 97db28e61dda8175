"""On-disk index store: ``<data_path>/.indexes/<kind>/<YYYY>/<MM>.json``."""

import json
import logging
import os
from pathlib import Path

from ..models import INDEX_VERSION, MonthIndex, Partition
from .base import IndexStoreBase, IndexStoreError

logger = logging.getLogger(__name__)

INDEXES_DIR = ".indexes"


def _is_valid_index(data) -> bool:
    """Current version, with items that are all objects."""
    if not isinstance(data, dict) or data.get("version") != INDEX_VERSION:
        return False
    items = data.get("items")
    return isinstance(items, list) and all(isinstance(item, dict) for item in items)


class FileIndexStore(IndexStoreBase):
    """JSON index files next to the records they are derived from."""

    def __init__(self, data_path: str | Path):
        self.data_path = Path(data_path)
        self.index_dir = self.data_path / INDEXES_DIR

    def path_for(self, kind: str, partition: Partition) -> Path:
        return self.index_dir / kind / partition.year / f"{partition.month}.json"

    def read(self, kind: str, partition: Partition) -> MonthIndex | None:
        path = self.path_for(kind, partition)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable index {path}: {e}")
            return None
        if not _is_valid_index(data):
            logger.warning(f"Ignoring malformed index {path}")
            return None
        return MonthIndex.from_dict(data)

    def write(self, kind: str, partition: Partition, index: MonthIndex) -> None:
        path = self.path_for(kind, partition)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(index.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise IndexStoreError(f"Failed to write index {path}: {e}", kind, partition) from e

    def delete(self, kind: str, partition: Partition) -> None:
        path = self.path_for(kind, partition)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise IndexStoreError(f"Failed to delete index {path}: {e}", kind, partition) from e

    def list_partitions(self, kind: str) -> list[Partition]:
        kind_dir = self.index_dir / kind
        if not kind_dir.is_dir():
            return []
        partitions = []
        for year_dir in kind_dir.iterdir():
            if not year_dir.is_dir():
                continue
            for index_file in year_dir.glob("*.json"):
                partitions.append(Partition(year_dir.name, index_file.stem))
        return sorted(partitions, reverse=True)
