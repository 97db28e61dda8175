"""Storage abstraction for derived index backends."""

from .base import IndexStoreBase, IndexStoreError, get_index_store

__all__ = ["IndexStoreBase", "IndexStoreError", "get_index_store"]
