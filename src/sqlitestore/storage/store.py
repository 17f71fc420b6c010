"""Session storage layer."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlitestore.base import IterableStore
from sqlitestore.config import StoreConfig, get_config
from sqlitestore.storage.cleanup import CleanupWorker
from sqlitestore.storage.db import Database, NotFoundError, format_timestamp, utc_now

DEFAULT_CLEANUP_INTERVAL = timedelta(minutes=5)


class SessionStore(IterableStore):
    """SQLite-backed store for opaque session payloads keyed by token.

    The ``Database`` handle is shared, not owned: closing it is up to the
    caller. Rows whose expiry has passed are invisible to ``find`` and
    ``all`` and are physically removed by a background sweep.
    """

    def __init__(
        self,
        db: Database,
        cleanup_interval: timedelta | float = DEFAULT_CLEANUP_INTERVAL,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the session store.

        Args:
            db: Database handle holding the ``sessions`` table.
            cleanup_interval: Time between expiry sweeps, as a timedelta or
                seconds. Zero or negative disables the background sweep.
            logger: Sink for cleanup messages and sweep errors. Defaults to
                the cleanup module logger.
        """
        self._db = db
        self._cleanup: CleanupWorker | None = None

        interval = _to_seconds(cleanup_interval)
        if interval > 0:
            self._cleanup = CleanupWorker(self.delete_expired, interval, logger=logger)
            self._cleanup.start()

    @classmethod
    def from_config(cls, db: Database, config: StoreConfig | None = None) -> SessionStore:
        """Create a store using the cleanup settings from a ``StoreConfig``.

        Falls back to the global configuration when ``config`` is omitted.
        """
        if config is None:
            config = get_config()
        return cls(db, cleanup_interval=config.get_cleanup_interval())

    @property
    def db(self) -> Database:
        """Get the database instance."""
        return self._db

    @property
    def cleanup_running(self) -> bool:
        return self._cleanup is not None and self._cleanup.running

    def __enter__(self) -> SessionStore:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        """Context manager exit. Stops cleanup; the database stays open."""
        self.stop_cleanup()

    def find(self, token: str) -> tuple[bytes | None, bool]:
        """Get the payload for a session token.

        Args:
            token: Session token to look up.

        Returns:
            ``(data, True)`` for an unexpired session, ``(None, False)`` if
            the token is unknown or expired.
        """
        try:
            row = self._db.query_row(
                "SELECT data FROM sessions WHERE token = ? AND ? < expiry",
                (token, format_timestamp(utc_now())),
            )
        except NotFoundError:
            return None, False
        return bytes(row["data"]), True

    def commit(self, token: str, data: bytes, expiry: datetime) -> None:
        """Add a session, or replace the data and expiry of an existing one.

        Args:
            token: Session token.
            data: Encoded session payload.
            expiry: Instant after which the session is invalid. Stored as UTC.
        """
        self._db.execute(
            """
            INSERT INTO sessions (token, data, expiry) VALUES (?, ?, ?)
            ON CONFLICT(token) DO UPDATE SET data = excluded.data, expiry = excluded.expiry
            """,
            (token, data, format_timestamp(expiry)),
        )

    def delete(self, token: str) -> None:
        """Remove a session. Unknown tokens are ignored."""
        self._db.execute("DELETE FROM sessions WHERE token = ?", (token,))

    def all(self) -> dict[str, bytes]:
        """Get the token and payload of every unexpired session.

        Returns:
            Mapping of token to payload.
        """
        sessions: dict[str, bytes] = {}
        with self._db.query(
            "SELECT token, data FROM sessions WHERE ? < expiry",
            (format_timestamp(utc_now()),),
        ) as rows:
            for row in rows:
                sessions[row["token"]] = bytes(row["data"])
        return sessions

    def delete_expired(self) -> int:
        """Remove every session whose expiry has passed.

        Returns:
            Number of sessions removed.
        """
        return self._db.execute(
            "DELETE FROM sessions WHERE expiry < ?",
            (format_timestamp(utc_now()),),
        )

    def stop_cleanup(self) -> None:
        """Stop the background cleanup thread.

        Stores are normally long-lived and never need this. A transient
        store, one created inside a test for example, should call it: the
        running thread keeps a reference to the store and so keeps it
        alive. Calling it more than once, or on a store created with
        cleanup disabled, does nothing.
        """
        if self._cleanup is not None:
            self._cleanup.stop()


def _to_seconds(interval: timedelta | float) -> float:
    if isinstance(interval, timedelta):
        return interval.total_seconds()
    return float(interval)
