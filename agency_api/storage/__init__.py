"""
Data storage layer.

All storage uses DuckDB; the reporting service depends only on the
StorageBackend interface.
"""

from functools import lru_cache

from agency_api.config import get_settings

from .base import StorageBackend
from .duckdb_storage import DuckDBStorage, StorageError


@lru_cache
def get_storage() -> StorageBackend:
    """
    Get cached storage backend instance (singleton).

    Returns:
        StorageBackend implementation instance
    """
    settings = get_settings()
    return DuckDBStorage(
        db_path=settings.db_path,
        manual_cohort_name=settings.manual_cohort_name,
        allow_clear=settings.testing,
    )


__all__ = [
    "StorageBackend",
    "DuckDBStorage",
    "StorageError",
    "get_storage",
]
