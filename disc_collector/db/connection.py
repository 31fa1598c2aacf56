"""Database connection management."""

import os
import sqlite3
from pathlib import Path
from typing import Optional

from disc_collector.utils import get_home

# Global connection cache
_connection: Optional[sqlite3.Connection] = None
_db_path: Optional[str] = None


def get_db_path(override: Optional[str] = None) -> str:
    """
    Get the database path.

    Priority:
    1. Explicit override parameter
    2. DISCC_DB environment variable
    3. Default: $DISCC_HOME/collection.sqlite (~/.discc unless set)
    """
    if override:
        return override

    env_path = os.environ.get("DISCC_DB")
    if env_path:
        return env_path

    return str(get_home() / "collection.sqlite")


def connect(path: str) -> sqlite3.Connection:
    """Open a new, uncached connection with the standard settings."""
    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def get_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    """
    Get or create a database connection.

    Uses a cached connection for the same path.
    """
    global _connection, _db_path

    path = get_db_path(db_path)

    if _connection is not None and _db_path == path:
        return _connection

    if _connection is not None:
        _connection.close()

    _connection = connect(path)
    _db_path = path

    return _connection


def close_connection():
    """Close the cached connection if one exists."""
    global _connection, _db_path

    if _connection is not None:
        _connection.close()
        _connection = None
        _db_path = None
