"""Database models and repositories."""

import sqlite3
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Tuple

from disc_collector.utils import now_iso


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def to_camel_dict(obj) -> Dict[str, Any]:
    """Dataclass -> JSON-ready dict with camelCase keys."""
    return {_camel(k): v for k, v in asdict(obj).items()}


@dataclass
class Disc:
    """An album/release grouping one or more editions."""
    disc_id: str
    artist: str
    title: str
    title_sub: Optional[str] = None
    category: Optional[str] = None
    country: Optional[str] = None
    release_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return to_camel_dict(self)


@dataclass
class Edition:
    """A specific retail release of a disc."""
    edition_id: str
    disc_id: str
    edition_name: Optional[str] = None
    display_name: Optional[str] = None
    price: Optional[int] = None
    currency: Optional[str] = None
    remarks: Optional[str] = None
    tracklist: Optional[str] = None
    benefit: Optional[str] = None
    video_content: Optional[str] = None
    is_purchased: bool = False
    is_wishlist: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return to_camel_dict(self)


@dataclass
class DiscographyRow:
    """Denormalized disc + edition row (read model, keyed by edition_id)."""
    edition_id: str
    disc_id: str
    artist: str
    title: str
    title_sub: Optional[str] = None
    category: Optional[str] = None
    country: Optional[str] = None
    release_date: Optional[str] = None
    edition_name: Optional[str] = None
    display_name: Optional[str] = None
    price: Optional[int] = None
    currency: Optional[str] = None
    remarks: Optional[str] = None
    tracklist: Optional[str] = None
    benefit: Optional[str] = None
    video_content: Optional[str] = None
    is_purchased: bool = False
    is_wishlist: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return to_camel_dict(self)


@dataclass
class RandomItem:
    """A bundled collectible (trading card, postcard...) tied to an edition."""
    item_id: Optional[int]
    edition_id: str
    item_type: Optional[str] = None
    member_name: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return to_camel_dict(self)


class DiscRepository:
    """CRUD operations for discs table."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def upsert(self, disc: Disc) -> None:
        """Insert or update a disc."""
        self.conn.execute(
            """
            INSERT INTO discs
            (disc_id, artist, title, title_sub, category, country, release_date)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(disc_id) DO UPDATE SET
                artist = excluded.artist,
                title = excluded.title,
                title_sub = excluded.title_sub,
                category = excluded.category,
                country = excluded.country,
                release_date = excluded.release_date
            """,
            (
                disc.disc_id,
                disc.artist,
                disc.title,
                disc.title_sub,
                disc.category,
                disc.country,
                disc.release_date,
            ),
        )

    def get(self, disc_id: str) -> Optional[Disc]:
        cursor = self.conn.execute(
            "SELECT * FROM discs WHERE disc_id = ?", (disc_id,)
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_disc(row)

    def list_all(self) -> List[Disc]:
        cursor = self.conn.execute("SELECT * FROM discs ORDER BY disc_id")
        return [self._row_to_disc(row) for row in cursor]

    def _row_to_disc(self, row: sqlite3.Row) -> Disc:
        return Disc(
            disc_id=row["disc_id"],
            artist=row["artist"],
            title=row["title"],
            title_sub=row["title_sub"],
            category=row["category"],
            country=row["country"],
            release_date=row["release_date"],
        )


class EditionRepository:
    """CRUD operations for editions table."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def upsert(self, edition: Edition, keep_flags: bool = True) -> None:
        """
        Insert or update an edition.

        With keep_flags, an existing row keeps its purchase/wishlist flags;
        only a fresh insert takes them from `edition`.
        """
        flag_update = "" if keep_flags else """,
                is_purchased = excluded.is_purchased,
                is_wishlist = excluded.is_wishlist"""
        self.conn.execute(
            f"""
            INSERT INTO editions
            (edition_id, disc_id, edition_name, display_name, price, currency,
             remarks, tracklist, benefit, video_content, is_purchased, is_wishlist)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(edition_id) DO UPDATE SET
                disc_id = excluded.disc_id,
                edition_name = excluded.edition_name,
                display_name = excluded.display_name,
                price = excluded.price,
                currency = excluded.currency,
                remarks = excluded.remarks,
                tracklist = excluded.tracklist,
                benefit = excluded.benefit,
                video_content = excluded.video_content{flag_update}
            """,
            (
                edition.edition_id,
                edition.disc_id,
                edition.edition_name,
                edition.display_name,
                edition.price,
                edition.currency,
                edition.remarks,
                edition.tracklist,
                edition.benefit,
                edition.video_content,
                1 if edition.is_purchased else 0,
                1 if edition.is_wishlist else 0,
            ),
        )

    def get(self, edition_id: str) -> Optional[Edition]:
        cursor = self.conn.execute(
            "SELECT * FROM editions WHERE edition_id = ?", (edition_id,)
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_edition(row)

    def list_by_disc(self, disc_id: str) -> List[Edition]:
        """Editions belonging to one disc, in ID order."""
        cursor = self.conn.execute(
            "SELECT * FROM editions WHERE disc_id = ? ORDER BY edition_id",
            (disc_id,),
        )
        return [self._row_to_edition(row) for row in cursor]

    def _row_to_edition(self, row: sqlite3.Row) -> Edition:
        return Edition(
            edition_id=row["edition_id"],
            disc_id=row["disc_id"],
            edition_name=row["edition_name"],
            display_name=row["display_name"],
            price=row["price"],
            currency=row["currency"],
            remarks=row["remarks"],
            tracklist=row["tracklist"],
            benefit=row["benefit"],
            video_content=row["video_content"],
            is_purchased=bool(row["is_purchased"]),
            is_wishlist=bool(row["is_wishlist"]),
        )


class DiscographyRepository:
    """Reads over the v_discography view, flag writes and ratio queries."""

    # Percentage of purchased editions; NULL when the group is empty
    _RATE_EXPR = "COUNT(CASE WHEN e.is_purchased = 1 THEN 1 END) * 100.0 / COUNT(*)"

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def list_ordered(self) -> List[DiscographyRow]:
        """All rows, newest release first, ties by edition_id."""
        cursor = self.conn.execute(
            "SELECT * FROM v_discography ORDER BY release_date DESC, edition_id ASC"
        )
        return [self._row_to_discography(row) for row in cursor]

    def list_wishlist(self) -> List[DiscographyRow]:
        cursor = self.conn.execute(
            "SELECT * FROM v_discography WHERE is_wishlist = 1"
        )
        return [self._row_to_discography(row) for row in cursor]

    def update_purchase_flag(self, edition_id: str, value: bool) -> bool:
        """Set is_purchased. Returns False if no such edition."""
        cursor = self.conn.execute(
            "UPDATE editions SET is_purchased = ? WHERE edition_id = ?",
            (1 if value else 0, edition_id),
        )
        return cursor.rowcount > 0

    def update_wishlist_flag(self, edition_id: str, value: bool) -> bool:
        """Set is_wishlist. Returns False if no such edition."""
        cursor = self.conn.execute(
            "UPDATE editions SET is_wishlist = ? WHERE edition_id = ?",
            (1 if value else 0, edition_id),
        )
        return cursor.rowcount > 0

    def total_purchase_rate(self) -> Optional[float]:
        """Purchased percentage over all editions, or None if there are none."""
        cursor = self.conn.execute(
            f"SELECT {self._RATE_EXPR} FROM editions e"
        )
        return cursor.fetchone()[0]

    def purchase_rate_by_artist(self) -> List[Tuple[str, float]]:
        return self._rate_by("artist")

    def purchase_rate_by_country(self) -> List[Tuple[str, float]]:
        return self._rate_by("country")

    def _rate_by(self, column: str) -> List[Tuple[str, float]]:
        cursor = self.conn.execute(
            f"""
            SELECT d.{column} AS label, {self._RATE_EXPR} AS rate
            FROM discs d
            JOIN editions e ON d.disc_id = e.disc_id
            WHERE d.{column} IS NOT NULL
            GROUP BY d.{column}
            ORDER BY d.{column}
            """
        )
        return [(row["label"], row["rate"]) for row in cursor]

    def _row_to_discography(self, row: sqlite3.Row) -> DiscographyRow:
        return DiscographyRow(
            edition_id=row["edition_id"],
            disc_id=row["disc_id"],
            artist=row["artist"],
            title=row["title"],
            title_sub=row["title_sub"],
            category=row["category"],
            country=row["country"],
            release_date=row["release_date"],
            edition_name=row["edition_name"],
            display_name=row["display_name"],
            price=row["price"],
            currency=row["currency"],
            remarks=row["remarks"],
            tracklist=row["tracklist"],
            benefit=row["benefit"],
            video_content=row["video_content"],
            is_purchased=bool(row["is_purchased"]),
            is_wishlist=bool(row["is_wishlist"]),
        )


class RandomItemRepository:
    """Append-only access to random_items."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def add(self, item: RandomItem) -> int:
        """Insert a new item. Stamps created_at. Returns the new item_id."""
        item.created_at = now_iso()
        cursor = self.conn.execute(
            """
            INSERT INTO random_items
            (edition_id, item_type, member_name, image_url, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                item.edition_id,
                item.item_type,
                item.member_name,
                item.image_url,
                item.created_at,
            ),
        )
        item.item_id = cursor.lastrowid
        return item.item_id

    def get(self, item_id: int) -> Optional[RandomItem]:
        cursor = self.conn.execute(
            "SELECT * FROM random_items WHERE item_id = ?", (item_id,)
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return self._row_to_item(row)

    def list_all(self, edition_id: Optional[str] = None) -> List[RandomItem]:
        """List items, optionally for one edition, oldest first."""
        query = "SELECT * FROM random_items"
        params = []
        if edition_id:
            query += " WHERE edition_id = ?"
            params.append(edition_id)
        query += " ORDER BY item_id"

        cursor = self.conn.execute(query, params)
        return [self._row_to_item(row) for row in cursor]

    def count(self, edition_id: Optional[str] = None) -> int:
        if edition_id:
            cursor = self.conn.execute(
                "SELECT COUNT(*) FROM random_items WHERE edition_id = ?", (edition_id,)
            )
        else:
            cursor = self.conn.execute("SELECT COUNT(*) FROM random_items")
        return cursor.fetchone()[0]

    def _row_to_item(self, row: sqlite3.Row) -> RandomItem:
        return RandomItem(
            item_id=row["item_id"],
            edition_id=row["edition_id"],
            item_type=row["item_type"],
            member_name=row["member_name"],
            image_url=row["image_url"],
            created_at=row["created_at"],
        )
