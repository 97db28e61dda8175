"""Abstract base class for index stores and factory function."""

from abc import ABC, abstractmethod
from typing import Any

from ..models import MonthIndex, Partition


class IndexStoreError(RuntimeError):
    """A derived index could not be read, written, or deleted."""

    def __init__(self, message: str, kind: str, partition: Partition):
        super().__init__(message)
        self.kind = kind
        self.year = partition.year
        self.month = partition.month


class IndexStoreBase(ABC):
    """Persistence for derived month indexes, one entry per (kind, year, month).

    Entries are replaced wholesale; there is no partial update.
    """

    @abstractmethod
    def read(self, kind: str, partition: Partition) -> MonthIndex | None:
        """Return the stored index, or None if absent or unreadable."""

    @abstractmethod
    def write(self, kind: str, partition: Partition, index: MonthIndex) -> None:
        """Overwrite the stored index. Raises IndexStoreError on failure."""

    @abstractmethod
    def delete(self, kind: str, partition: Partition) -> None:
        """Remove the stored index if present. Raises IndexStoreError on failure."""

    @abstractmethod
    def list_partitions(self, kind: str) -> list[Partition]:
        """Partitions that currently have a stored index, newest first."""


def get_index_store(config: dict[str, Any]) -> IndexStoreBase:
    """Factory: return the right index store based on config."""
    backend = config.get("index", {}).get("backend", "filesystem")

    if backend == "filesystem":
        from .filesystem import FileIndexStore
        return FileIndexStore(config["data_path"])
    elif backend == "memory":
        from .memory import MemoryIndexStore
        return MemoryIndexStore()
    else:
        raise ValueError(f"Unknown index backend: {backend}")
