"""Read-side queries and flag writes over the collection."""

import logging
import sqlite3
from typing import List, Optional

from disc_collector.db.models import (
    Disc,
    DiscographyRepository,
    DiscographyRow,
    DiscRepository,
    Edition,
    EditionRepository,
    RandomItem,
    RandomItemRepository,
)
from disc_collector.errors import NotFound, StorageUnavailable

log = logging.getLogger(__name__)


def normalize_edition_filter(value: Optional[str]) -> Optional[str]:
    """Treat missing, empty and the literal "undefined" as no filter."""
    if value is None:
        return None
    value = value.strip()
    if not value or value == "undefined":
        return None
    return value


class CollectionService:
    """Listing, wishlist and purchase-flag operations on one connection."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.discography = DiscographyRepository(conn)
        self.discs = DiscRepository(conn)
        self.editions = EditionRepository(conn)
        self.items = RandomItemRepository(conn)

    def list_collection(self) -> List[DiscographyRow]:
        try:
            return self.discography.list_ordered()
        except sqlite3.Error as e:
            raise StorageUnavailable("list_collection", str(e)) from e

    def list_wishlist(self) -> List[DiscographyRow]:
        try:
            return self.discography.list_wishlist()
        except sqlite3.Error as e:
            raise StorageUnavailable("list_wishlist", str(e)) from e

    def set_purchased(self, edition_id: str, value: bool) -> None:
        """Overwrite the purchase flag. Raises NotFound for an unknown edition."""
        self._set_flag("purchase", self.discography.update_purchase_flag, edition_id, value)

    def set_wishlist(self, edition_id: str, value: bool) -> None:
        """Overwrite the wishlist flag. Raises NotFound for an unknown edition."""
        self._set_flag("wishlist", self.discography.update_wishlist_flag, edition_id, value)

    def _set_flag(self, flag: str, update, edition_id: str, value: bool) -> None:
        try:
            updated = update(edition_id, value)
            self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise StorageUnavailable(f"set_{flag}", str(e)) from e
        if not updated:
            raise NotFound(edition_id)
        log.info("Edition %s: %s = %s", edition_id, flag, value)

    def list_discs(self) -> List[Disc]:
        try:
            return self.discs.list_all()
        except sqlite3.Error as e:
            raise StorageUnavailable("list_discs", str(e)) from e

    def list_editions(self, disc_id: str) -> List[Edition]:
        try:
            return self.editions.list_by_disc(disc_id)
        except sqlite3.Error as e:
            raise StorageUnavailable("list_editions", str(e)) from e

    def list_random_items(self, edition_id: Optional[str] = None) -> List[RandomItem]:
        try:
            return self.items.list_all(normalize_edition_filter(edition_id))
        except sqlite3.Error as e:
            raise StorageUnavailable("list_random_items", str(e)) from e
