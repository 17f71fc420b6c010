"""Storage layer for session data."""

from sqlitestore.storage.cleanup import CleanupWorker
from sqlitestore.storage.db import Database, DatabaseError, NotFoundError
from sqlitestore.storage.store import DEFAULT_CLEANUP_INTERVAL, SessionStore

__all__ = [
    "SessionStore",
    "Database",
    "DatabaseError",
    "NotFoundError",
    "CleanupWorker",
    "DEFAULT_CLEANUP_INTERVAL",
]
