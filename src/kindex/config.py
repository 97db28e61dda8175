"""Configuration management for kindex."""

import copy
import os
from pathlib import Path
from typing import Any

import yaml


DEFAULT_CONFIG = {
    "data_path": "./.kindex",
    "index": {"backend": "filesystem", "max_age_seconds": 300, "recent_months": 6},
    "graph": {
        "gap_density_threshold": 0.05,
        "min_gap_cluster_size": 3,
        "max_gaps": 3,
        "gap_top_tags": 3,
        "cluster_edge_types": None,
    },
    "listing": {"default_limit": 20, "max_limit": 100},
}


def _find_config_file() -> Path | None:
    """Look for config.yaml in standard locations."""
    candidates = [
        Path.cwd() / "config" / "config.yaml",
        Path.cwd() / "config.yaml",
        Path.home() / ".kindex" / "config.yaml",
    ]
    for p in candidates:
        if p.exists():
            return p
    return None


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load configuration, merging defaults with file and env vars."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path) if config_path else _find_config_file()
    if path and path.exists():
        with open(path) as f:
            file_cfg = yaml.safe_load(f) or {}
        _deep_merge(cfg, file_cfg)

    # Env overrides
    if data_path := os.environ.get("KINDEX_DATA_PATH"):
        cfg["data_path"] = data_path
    if max_age := os.environ.get("KINDEX_INDEX_MAX_AGE"):
        cfg["index"]["max_age_seconds"] = float(max_age)

    cfg["data_path"] = str(Path(cfg["data_path"]).expanduser().resolve())

    return cfg


def _deep_merge(base: dict, override: dict) -> None:
    """Merge override into base in-place."""
    for k, v in override.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
