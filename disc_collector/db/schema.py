"""Database schema."""

import sqlite3

SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Albums / releases (seeded out-of-band)
CREATE TABLE IF NOT EXISTS discs (
    disc_id TEXT PRIMARY KEY,
    artist TEXT NOT NULL,
    title TEXT NOT NULL,
    title_sub TEXT,
    category TEXT,          -- 'album', 'single', ...
    country TEXT,           -- 'jp', 'kr', ...
    release_date TEXT       -- ISO date, used for listing order
);

-- Retail editions of a disc; owns the purchase and wishlist flags
CREATE TABLE IF NOT EXISTS editions (
    edition_id TEXT PRIMARY KEY,
    disc_id TEXT NOT NULL REFERENCES discs(disc_id),
    edition_name TEXT,
    display_name TEXT,
    price INTEGER,
    currency TEXT,
    remarks TEXT,
    tracklist TEXT,
    benefit TEXT,
    video_content TEXT,
    is_purchased INTEGER NOT NULL DEFAULT 0,
    is_wishlist INTEGER NOT NULL DEFAULT 0
);

-- Random collectibles (trading cards etc.), append-only
CREATE TABLE IF NOT EXISTS random_items (
    item_id INTEGER PRIMARY KEY AUTOINCREMENT,
    edition_id TEXT NOT NULL REFERENCES editions(edition_id),
    item_type TEXT,
    member_name TEXT,
    image_url TEXT NOT NULL,
    created_at TEXT NOT NULL
);

-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_editions_disc ON editions(disc_id);
CREATE INDEX IF NOT EXISTS idx_editions_wishlist ON editions(is_wishlist);
CREATE INDEX IF NOT EXISTS idx_random_items_edition ON random_items(edition_id);
CREATE INDEX IF NOT EXISTS idx_discs_release ON discs(release_date);

-- Denormalized listing view (one row per edition)
CREATE VIEW IF NOT EXISTS v_discography AS
SELECT
    e.edition_id,
    d.disc_id,
    d.artist,
    d.title,
    d.title_sub,
    d.category,
    d.country,
    d.release_date,
    e.edition_name,
    e.display_name,
    e.price,
    e.currency,
    e.remarks,
    e.tracklist,
    e.benefit,
    e.video_content,
    e.is_purchased,
    e.is_wishlist
FROM editions e
JOIN discs d ON e.disc_id = d.disc_id;
"""


def get_current_version(conn: sqlite3.Connection) -> int:
    """Get the current schema version, or 0 if not initialized."""
    try:
        cursor = conn.execute(
            "SELECT MAX(version) FROM schema_version"
        )
        row = cursor.fetchone()
        return row[0] if row[0] is not None else 0
    except sqlite3.OperationalError:
        # Table doesn't exist
        return 0


def init_db(conn: sqlite3.Connection, force: bool = False) -> bool:
    """
    Initialize the database schema.

    Args:
        conn: Database connection
        force: If True, drop and recreate everything

    Returns:
        True if schema was created, False if already up to date
    """
    from disc_collector.utils import now_iso

    current = get_current_version(conn)

    if current >= SCHEMA_VERSION and not force:
        return False

    if force:
        drop_all_tables(conn)

    conn.executescript(SCHEMA_SQL)

    conn.execute(
        "INSERT OR REPLACE INTO schema_version (version, applied_at) VALUES (?, ?)",
        (SCHEMA_VERSION, now_iso())
    )
    conn.commit()

    return True


def drop_all_tables(conn: sqlite3.Connection):
    """Drop all tables (for testing/reset)."""
    conn.executescript("""
        DROP VIEW IF EXISTS v_discography;
        DROP TABLE IF EXISTS random_items;
        DROP TABLE IF EXISTS editions;
        DROP TABLE IF EXISTS discs;
        DROP TABLE IF EXISTS schema_version;
    """)
    conn.commit()
