"""Database connection management and schema setup."""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlitestore.config import StoreConfig

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1

MEMORY_PATH = ":memory:"

SCHEMA_SQL = """
-- Session rows: opaque payload keyed by token
CREATE TABLE IF NOT EXISTS sessions (
    token  TEXT      PRIMARY KEY,
    data   BLOB      NOT NULL,
    expiry TIMESTAMP NOT NULL
);

-- Expiry lookups for find/all and the cleanup sweep
CREATE INDEX IF NOT EXISTS idx_sessions_expiry ON sessions(expiry);

-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at INTEGER NOT NULL
);
"""


class DatabaseError(Exception):
    """Database operation error."""


class NotFoundError(DatabaseError):
    """Raised by single-row queries that match no row."""


class Database:
    """SQLite connection manager shared between session stores.

    The connection is opened with ``check_same_thread=False`` and every
    statement runs under a re-entrant lock, so one instance can be used
    from caller threads and a background cleanup thread at the same time.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Initialize database handle.

        Args:
            db_path: Path to the SQLite database file, or ``":memory:"``.
        """
        self._db_path = db_path if str(db_path) == MEMORY_PATH else Path(db_path)
        self._connection: sqlite3.Connection | None = None
        self._closed = False
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: StoreConfig) -> Database:
        """Create a handle for the database named in a ``StoreConfig``."""
        return cls(config.get_db_path())

    @property
    def path(self) -> Path | str:
        """Get the database file path."""
        return self._db_path

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_memory(self) -> bool:
        return str(self._db_path) == MEMORY_PATH

    def connect(self) -> sqlite3.Connection:
        """Get or create database connection.

        Returns:
            Active SQLite connection.

        Raises:
            sqlite3.ProgrammingError: If the handle was closed.
        """
        with self._lock:
            if self._closed:
                raise sqlite3.ProgrammingError("Cannot operate on a closed database.")
            if self._connection is None:
                if not self.is_memory:
                    # Ensure parent directory exists
                    self._db_path.parent.mkdir(parents=True, exist_ok=True)

                self._connection = sqlite3.connect(
                    str(self._db_path),
                    check_same_thread=False,
                )
                if not self.is_memory:
                    # Use WAL mode for better concurrent access
                    self._connection.execute("PRAGMA journal_mode = WAL")
                # Return rows as Row objects for dict-like access
                self._connection.row_factory = sqlite3.Row
                logger.debug("Opened session database at %s", self._db_path)

            return self._connection

    def close(self) -> None:
        """Close the database connection. The handle cannot be reopened."""
        with self._lock:
            self._closed = True
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    def __enter__(self) -> Database:
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()

    def execute(self, sql: str, params: tuple = ()) -> int:
        """Execute a single statement and commit it.

        Args:
            sql: SQL statement to execute.
            params: Parameters for the statement.

        Returns:
            Number of rows affected.

        Raises:
            sqlite3.Error: Whatever the engine raised; the transaction is
                rolled back first.
        """
        with self._lock:
            conn = self.connect()
            try:
                cursor = conn.execute(sql, params)
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise
            rowcount = cursor.rowcount
            cursor.close()
            return rowcount

    def query_row(self, sql: str, params: tuple = ()) -> sqlite3.Row:
        """Run a query and return its first row.

        Raises:
            NotFoundError: If the query returned no rows.
        """
        with self._lock:
            cursor = self.connect().execute(sql, params)
            try:
                row = cursor.fetchone()
            finally:
                cursor.close()
        if row is None:
            raise NotFoundError("no rows in result set")
        return row

    @contextmanager
    def query(self, sql: str, params: tuple = ()) -> Iterator[Iterator[sqlite3.Row]]:
        """Run a query and yield a lazy iterator over its rows.

        Usage:
            with db.query("SELECT token FROM sessions") as rows:
                for row in rows:
                    ...

        The cursor is closed and the lock released when the block exits,
        including when iteration raises.
        """
        with self._lock:
            cursor = self.connect().execute(sql, params)
            try:
                yield iter(cursor)
            finally:
                cursor.close()

    def get_schema_version(self) -> int:
        """Get the current schema version.

        Returns:
            Current schema version, or 0 if not initialized.
        """
        try:
            row = self.query_row(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            )
        except NotFoundError:
            return 0
        except sqlite3.OperationalError:
            # Table doesn't exist yet
            return 0
        return row["version"]

    def initialize_schema(self) -> None:
        """Create the sessions table and its expiry index if missing."""
        if self.get_schema_version() >= SCHEMA_VERSION:
            return

        with self._lock:
            conn = self.connect()
            conn.executescript(SCHEMA_SQL)
            conn.execute(
                "INSERT OR REPLACE INTO schema_version (version, applied_at) VALUES (?, ?)",
                (SCHEMA_VERSION, int(time.time())),
            )
            conn.commit()
        logger.debug("Initialized session schema v%d at %s", SCHEMA_VERSION, self._db_path)


def format_timestamp(value: datetime) -> str:
    """Render an instant as fixed-width UTC text for the expiry column.

    Naive datetimes are taken to be local time. The fixed width keeps SQL
    text comparison consistent with chronological order. Instants that fall
    outside the datetime range once shifted to UTC are clamped to
    ``datetime.min`` or ``datetime.max``.
    """
    try:
        if value.tzinfo is None:
            value = value.astimezone()
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    except OverflowError:
        value = datetime.min if value.year == datetime.min.year else datetime.max
    return value.isoformat(sep=" ", timespec="microseconds")


def parse_timestamp(value: str | bytes) -> datetime:
    """Parse a stored expiry value back into an aware UTC datetime."""
    if isinstance(value, bytes):
        value = value.decode()
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)

