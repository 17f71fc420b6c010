"""
sqlitestore - SQLite session store

Persists opaque session payloads keyed by token in a SQLite table, with
lazy expiry on reads and a background sweep that deletes expired rows.
"""

__version__ = "0.1.0"

from sqlitestore.base import IterableStore, Store
from sqlitestore.config import StoreConfig, load_config
from sqlitestore.storage import (
    DEFAULT_CLEANUP_INTERVAL,
    CleanupWorker,
    Database,
    DatabaseError,
    NotFoundError,
    SessionStore,
)

__all__ = [
    "__version__",
    # Interfaces
    "Store",
    "IterableStore",
    # Storage
    "SessionStore",
    "Database",
    "DatabaseError",
    "NotFoundError",
    "CleanupWorker",
    "DEFAULT_CLEANUP_INTERVAL",
    # Config
    "StoreConfig",
    "load_config",
]
