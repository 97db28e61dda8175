"""Cached month indexes with staleness-checked lazy rebuilds.

Record files are the source of truth. Each (kind, year, month) partition has
one derived MonthIndex in an IndexStoreBase backend; an index older than
``max_age`` (or missing) is rebuilt synchronously by whichever read needs it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable

from ..models import MonthIndex, Partition, format_timestamp, parse_timestamp, utc_now
from ..records.scanner import list_partitions, validate_partition
from ..storage.base import IndexStoreBase, IndexStoreError
from .builder import RECORD_KINDS, build_month_index, get_projection, sort_items

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(minutes=5)
DEFAULT_RECENT_MONTHS = 6

SCOPE_RECENT = "recent"
SCOPE_ALL = "all"


def is_index_stale(index: MonthIndex | None, now: datetime, max_age: timedelta = DEFAULT_MAX_AGE) -> bool:
    """An index is stale when absent, undated, or older than max_age."""
    if index is None:
        return True
    updated_at = parse_timestamp(index.updated_at)
    if updated_at is None:
        return True
    return now - updated_at > max_age


class IndexRebuildError(RuntimeError):
    """One or more partitions could not be rebuilt during a full rebuild."""

    def __init__(self, failures: list[tuple[str, str, str, Exception]]):
        self.failures = failures
        where = ", ".join(f"{kind}/{year}/{month}" for kind, year, month, _ in failures)
        super().__init__(f"Failed to rebuild {len(failures)} partition(s): {where}")


@dataclass
class KindRebuildSummary:
    item_count: int = 0
    partition_count: int = 0
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "itemCount": self.item_count,
            "partitionCount": self.partition_count,
            "updatedAt": self.updated_at,
        }


@dataclass
class RebuildReport:
    kinds: dict[str, KindRebuildSummary] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {kind: summary.to_dict() for kind, summary in self.kinds.items()}


class IndexManager:
    """Reads, lazily rebuilds, and merges month indexes for each record kind."""

    def __init__(
        self,
        data_path: str | Path,
        store: IndexStoreBase,
        max_age: timedelta = DEFAULT_MAX_AGE,
        recent_months: int = DEFAULT_RECENT_MONTHS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.data_path = Path(data_path)
        self.store = store
        self.max_age = max_age
        self.recent_months = recent_months
        self.clock = clock

    @classmethod
    def from_config(cls, config: dict[str, Any], store: IndexStoreBase | None = None) -> "IndexManager":
        from ..storage import get_index_store

        index_cfg = config.get("index", {})
        return cls(
            config["data_path"],
            store or get_index_store(config),
            max_age=timedelta(seconds=index_cfg.get("max_age_seconds", 300)),
            recent_months=index_cfg.get("recent_months", DEFAULT_RECENT_MONTHS),
        )

    def list_partitions(self, kind: str) -> list[Partition]:
        """Every partition directory of a kind, newest first."""
        get_projection(kind)
        return list_partitions(self.data_path / kind)

    def list_recent_partitions(self, kind: str, n: int | None) -> list[Partition]:
        """The n newest partitions; None means all of them."""
        partitions = self.list_partitions(kind)
        return partitions if n is None else partitions[:max(0, n)]

    def read_partition(self, kind: str, year: str, month: str) -> MonthIndex | None:
        """The cached index as stored, without any freshness check."""
        get_projection(kind)
        return self.store.read(kind, validate_partition(year, month))

    def rebuild_partition(self, kind: str, year: str, month: str) -> MonthIndex:
        """Rebuild from record files and overwrite the cache.

        An empty result removes the cached entry instead of storing it.
        Store failures propagate as IndexStoreError.
        """
        partition = validate_partition(year, month)
        index = build_month_index(self.data_path, kind, partition.year, partition.month, now=self.clock())
        if index.items:
            self.store.write(kind, partition, index)
        else:
            self.store.delete(kind, partition)
        return index

    def is_stale(self, index: MonthIndex | None) -> bool:
        return is_index_stale(index, self.clock(), self.max_age)

    def read_fresh_partition(self, kind: str, partition: Partition) -> MonthIndex:
        index = self.store.read(kind, partition)
        if self.is_stale(index):
            logger.info(f"Rebuilding {'missing' if index is None else 'stale'} index {kind}/{partition.key}")
            index = self.rebuild_partition(kind, partition.year, partition.month)
        return index

    def read_merged(self, kind: str, scope: str = SCOPE_RECENT, months: int | None = None) -> MonthIndex:
        """Merge a window of partitions into one listing, newest first.

        ``scope`` is ``"recent"`` (the ``months`` newest partitions, defaulting
        to ``recent_months``) or ``"all"``. The merged updatedAt is the newest
        updatedAt seen across the contributing partitions.
        """
        if scope == SCOPE_ALL:
            partitions = self.list_recent_partitions(kind, None)
        elif scope == SCOPE_RECENT:
            partitions = self.list_recent_partitions(kind, months if months is not None else self.recent_months)
        else:
            raise ValueError(f"Unknown scope: {scope}")

        items: list[dict[str, Any]] = []
        latest: datetime | None = None
        latest_raw = ""
        for partition in partitions:
            index = self.read_fresh_partition(kind, partition)
            if not index.items:
                continue
            items.extend(index.items)
            updated_at = parse_timestamp(index.updated_at)
            if updated_at is not None and (latest is None or updated_at > latest):
                latest, latest_raw = updated_at, index.updated_at

        return MonthIndex(
            updated_at=latest_raw or format_timestamp(self.clock()),
            items=sort_items(items),
        )

    def status(self) -> dict[str, dict[str, Any]]:
        """Per-kind freshness summary of the all-months listing."""
        result = {}
        for kind in RECORD_KINDS:
            merged = self.read_merged(kind, SCOPE_ALL)
            result[kind] = {
                "exists": len(merged.items) > 0,
                "itemCount": len(merged.items),
                "updatedAt": merged.updated_at,
                "isStale": self.is_stale(merged),
            }
        return result

    def rebuild_all(self) -> RebuildReport:
        """Unconditionally rebuild every partition of every kind.

        Cached indexes whose record month directory no longer exists are
        deleted first. Every partition is attempted; failures are collected and raised
        together as IndexRebuildError once the pass is complete.
        """
        report = RebuildReport()
        failures: list[tuple[str, str, str, Exception]] = []

        for kind in RECORD_KINDS:
            summary = KindRebuildSummary()
            latest: datetime | None = None
            partitions = self.list_partitions(kind)
            for partition in self.store.list_partitions(kind):
                if partition in partitions:
                    continue
                try:
                    self.store.delete(kind, partition)
                    logger.info(f"Removed orphaned index {kind}/{partition.key}")
                except IndexStoreError as e:
                    logger.error(f"Failed to remove orphaned index {kind}/{partition.key}: {e}")
                    failures.append((kind, partition.year, partition.month, e))

            for partition in partitions:
                try:
                    index = self.rebuild_partition(kind, partition.year, partition.month)
                except IndexStoreError as e:
                    logger.error(f"Failed to rebuild {kind}/{partition.key}: {e}")
                    failures.append((kind, partition.year, partition.month, e))
                    continue
                if not index.items:
                    continue
                summary.item_count += len(index.items)
                summary.partition_count += 1
                updated_at = parse_timestamp(index.updated_at)
                if updated_at is not None and (latest is None or updated_at > latest):
                    latest, summary.updated_at = updated_at, index.updated_at
            if not summary.updated_at:
                summary.updated_at = format_timestamp(self.clock())
            report.kinds[kind] = summary
            logger.info(f"Rebuilt {summary.partition_count} {kind} partition(s), {summary.item_count} item(s)")

        if failures:
            raise IndexRebuildError(failures)
        return report
