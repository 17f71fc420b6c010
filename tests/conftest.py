import shutil
import tempfile
from pathlib import Path

import pytest

from sqlitestore.storage import Database, SessionStore


@pytest.fixture
def temp_db_path():
    """Create a temporary database path."""
    temp_dir = tempfile.mkdtemp()
    db_path = Path(temp_dir) / "test_sessions.db"
    yield db_path
    shutil.rmtree(temp_dir)


@pytest.fixture
def db(temp_db_path):
    """Create a Database with the sessions schema in place."""
    database = Database(temp_db_path)
    database.initialize_schema()
    yield database
    database.close()


@pytest.fixture
def session_store(db):
    """Create a SessionStore with the background sweep disabled."""
    store = SessionStore(db, cleanup_interval=0)
    yield store
    store.stop_cleanup()


@pytest.fixture
def row_count(db):
    """Count physical rows for a token, expired or not."""

    def _count(token):
        row = db.query_row("SELECT COUNT(*) AS n FROM sessions WHERE token = ?", (token,))
        return row["n"]

    return _count
