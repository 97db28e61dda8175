"""Walk the year/month record tree.

Record kinds live under ``<root>/<kind>/<YYYY>/<MM>/<id>.json``. Walking is
done with an explicit worklist so an unreadable sub-directory only drops
that directory instead of aborting the whole scan.
"""

import logging
import os
import re
from collections import deque
from pathlib import Path

from ..models import Partition

logger = logging.getLogger(__name__)

RECORD_EXTENSION = ".json"

_YEAR_RE = re.compile(r"^\d{4}$")
_MONTH_RE = re.compile(r"^\d{2}$")


def validate_partition(year: str, month: str) -> Partition:
    """Return a Partition, rejecting anything but YYYY/MM keys."""
    if not _YEAR_RE.match(str(year)) or not _MONTH_RE.match(str(month)):
        raise ValueError(f"Invalid partition: {year!r}/{month!r} (expected YYYY/MM)")
    return Partition(str(year), str(month))


def _subdirs(path: Path) -> list[os.DirEntry]:
    try:
        with os.scandir(path) as it:
            return [e for e in it if e.is_dir()]
    except OSError as e:
        logger.warning(f"Skipping unreadable directory {path}: {e}")
        return []


def list_partitions(kind_dir: Path) -> list[Partition]:
    """List every YYYY/MM directory under a kind directory, newest first."""
    kind_dir = Path(kind_dir)
    if not kind_dir.is_dir():
        return []

    partitions = []
    for year in _subdirs(kind_dir):
        if not _YEAR_RE.match(year.name):
            continue
        for month in _subdirs(Path(year.path)):
            if _MONTH_RE.match(month.name):
                partitions.append(Partition(year.name, month.name))

    partitions.sort(key=lambda p: f"{p.year}{p.month}", reverse=True)
    return partitions


def list_partition_files(kind_dir: Path, year: str, month: str) -> list[Path]:
    """Record files directly inside one partition directory (non-recursive).

    A missing partition is an empty one. Files come back in name order so
    builds are deterministic.
    """
    partition = validate_partition(year, month)
    month_dir = Path(kind_dir) / partition.year / partition.month
    if not month_dir.is_dir():
        return []

    try:
        with os.scandir(month_dir) as it:
            files = [
                Path(e.path) for e in it
                if e.is_file() and e.name.endswith(RECORD_EXTENSION)
            ]
    except OSError as e:
        logger.warning(f"Skipping unreadable partition {month_dir}: {e}")
        return []
    return sorted(files)


def list_record_files(kind_dir: Path) -> list[Path]:
    """All record files across all partitions of a kind.

    Files nested deeper than YYYY/MM are included as long as their first two
    path segments are a valid year and month.
    """
    kind_dir = Path(kind_dir)
    if not kind_dir.is_dir():
        return []

    files: list[Path] = []
    queue: deque[tuple[Path, int]] = deque([(kind_dir, 0)])
    while queue:
        current, depth = queue.popleft()
        try:
            with os.scandir(current) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.warning(f"Skipping unreadable directory {current}: {e}")
            continue

        for entry in entries:
            if entry.is_dir():
                if depth == 0 and not _YEAR_RE.match(entry.name):
                    continue
                if depth == 1 and not _MONTH_RE.match(entry.name):
                    continue
                queue.append((Path(entry.path), depth + 1))
            elif entry.is_file() and depth >= 2 and entry.name.endswith(RECORD_EXTENSION):
                files.append(Path(entry.path))

    return files


def list_json_files(directory: Path) -> list[Path]:
    """Every JSON file below a directory, regardless of layout."""
    directory = Path(directory)
    if not directory.is_dir():
        return []

    files: list[Path] = []
    stack = [directory]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as it:
                entries = list(it)
        except OSError as e:
            logger.warning(f"Skipping unreadable directory {current}: {e}")
            continue
        for entry in entries:
            if entry.is_dir():
                stack.append(Path(entry.path))
            elif entry.is_file() and entry.name.endswith(RECORD_EXTENSION):
                files.append(Path(entry.path))
    return sorted(files)
