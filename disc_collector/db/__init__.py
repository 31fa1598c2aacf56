"""Database layer for Disc Collector."""

from disc_collector.db.connection import close_connection, connect, get_connection, get_db_path
from disc_collector.db.models import (
    DiscographyRepository,
    DiscRepository,
    EditionRepository,
    RandomItemRepository,
)
from disc_collector.db.schema import SCHEMA_VERSION, init_db

__all__ = [
    "get_db_path",
    "get_connection",
    "close_connection",
    "connect",
    "init_db",
    "SCHEMA_VERSION",
    "DiscRepository",
    "EditionRepository",
    "DiscographyRepository",
    "RandomItemRepository",
]
