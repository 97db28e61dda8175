"""In-process index store, used for tests and throwaway runs."""

import copy

from ..models import MonthIndex, Partition
from .base import IndexStoreBase


class MemoryIndexStore(IndexStoreBase):
    """Dict-backed store. Entries are deep-copied in and out."""

    def __init__(self):
        self._indexes: dict[tuple[str, Partition], MonthIndex] = {}

    def read(self, kind: str, partition: Partition) -> MonthIndex | None:
        index = self._indexes.get((kind, partition))
        return copy.deepcopy(index) if index is not None else None

    def write(self, kind: str, partition: Partition, index: MonthIndex) -> None:
        self._indexes[(kind, partition)] = copy.deepcopy(index)

    def delete(self, kind: str, partition: Partition) -> None:
        self._indexes.pop((kind, partition), None)

    def list_partitions(self, kind: str) -> list[Partition]:
        return sorted((p for k, p in self._indexes if k == kind), reverse=True)
