"""Batch ingestion of random items with attached images.

A batch is N positionally aligned (kind, member tag, image) slots for one
edition. Each non-empty slot is uploaded to the blob store and then written
as a random_items row. Empty slots (no file chosen) keep their position so
the metadata of later slots still pairs with the right image.

The blob store and the database are not transactionally linked. How a
failure partway through is handled is up to the IngestStrategy:

- SequentialIngest stops at the first failure and leaves earlier rows and
  blobs in place (no rollback).
- TransactionalIngest uploads everything first, writes all rows in one
  transaction, and on any failure rolls the rows back and deletes the
  blobs it uploaded.
"""

import logging
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from disc_collector.db.models import RandomItem, RandomItemRepository
from disc_collector.errors import IngestFailed, StorageUnavailable, UploadFailed, ValidationFailed

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImagePayload:
    """An uploaded file: bytes, declared content type, original filename."""
    data: bytes
    content_type: str = "application/octet-stream"
    filename: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        # A form file input with nothing selected submits a zero-length part
        return not self.data


@dataclass(frozen=True)
class ItemUpload:
    kind: str
    member_tag: str
    payload: ImagePayload


@dataclass
class IngestReport:
    """What a successful run stored and which input positions it skipped."""
    edition_id: str
    items: List[RandomItem] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.items)


def build_items(
    kinds: Sequence[str],
    member_tags: Sequence[str],
    payloads: Sequence[ImagePayload],
) -> List[ItemUpload]:
    """Zip the three parallel sequences. Raises ValidationFailed if misaligned."""
    if not (len(kinds) == len(member_tags) == len(payloads)):
        raise ValidationFailed(
            f"Misaligned batch: {len(kinds)} names, {len(member_tags)} member names, "
            f"{len(payloads)} images"
        )
    return [
        ItemUpload(kind=k, member_tag=m, payload=p)
        for k, m, p in zip(kinds, member_tags, payloads)
    ]


def _new_item(edition_id: str, item: ItemUpload, url: str) -> RandomItem:
    return RandomItem(
        item_id=None,
        edition_id=edition_id,
        item_type=item.kind,
        member_name=item.member_tag,
        image_url=url,
    )


class IngestStrategy(ABC):
    """How a batch is committed to the blob store and the database."""

    @abstractmethod
    def run(self, conn: sqlite3.Connection, store, edition_id: str,
            items: Sequence[ItemUpload]) -> IngestReport:
        """Store the batch or raise IngestFailed."""


class SequentialIngest(IngestStrategy):
    """Upload then insert, one slot at a time, committing each row."""

    def run(self, conn, store, edition_id, items):
        repo = RandomItemRepository(conn)
        report = IngestReport(edition_id=edition_id)

        for index, item in enumerate(items):
            if item.payload.is_empty:
                log.debug("Edition %s: slot %d has no file, skipping", edition_id, index)
                report.skipped.append(index)
                continue

            result = store.put_object(
                item.payload.data, item.payload.content_type, item.payload.filename
            )
            if not result.ok:
                failure = IngestFailed(
                    edition_id, index, "upload", report.count, UploadFailed(result.error)
                )
                log.error("%s", failure)
                raise failure

            record = _new_item(edition_id, item, result.url)
            try:
                repo.add(record)
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                failure = IngestFailed(
                    edition_id, index, "persist", report.count,
                    StorageUnavailable("insert_random_item", str(e)),
                )
                log.error("%s (orphaned blob: %s)", failure, result.url)
                raise failure from e

            report.items.append(record)
            log.info(
                "Edition %s: stored item %d (%s / %s) -> %s",
                edition_id, record.item_id, item.kind, item.member_tag, result.url,
            )

        return report


class TransactionalIngest(IngestStrategy):
    """All-or-nothing: stage every upload, then insert all rows in one transaction."""

    def run(self, conn, store, edition_id, items):
        repo = RandomItemRepository(conn)
        report = IngestReport(edition_id=edition_id)
        staged = []  # (index, item, url)

        try:
            for index, item in enumerate(items):
                if item.payload.is_empty:
                    report.skipped.append(index)
                    continue
                result = store.put_object(
                    item.payload.data, item.payload.content_type, item.payload.filename
                )
                if not result.ok:
                    raise IngestFailed(
                        edition_id, index, "upload", 0, UploadFailed(result.error)
                    )
                staged.append((index, item, result.url))

            index = staged[0][0] if staged else 0
            try:
                for index, item, url in staged:
                    record = _new_item(edition_id, item, url)
                    repo.add(record)
                    report.items.append(record)
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise IngestFailed(
                    edition_id, index, "persist", 0,
                    StorageUnavailable("insert_random_item", str(e)),
                ) from e
        except IngestFailed as failure:
            log.error("%s; discarding %d staged upload(s)", failure, len(staged))
            _discard(store, [url for _, _, url in staged])
            raise

        log.info("Edition %s: stored %d item(s) in one transaction", edition_id, report.count)
        return report


def _discard(store, urls: List[str]) -> None:
    delete = getattr(store, "delete_object", None)
    if delete is None:
        return
    for url in urls:
        if not delete(url):
            log.warning("Orphaned blob left in store: %s", url)


def ingest(
    conn: sqlite3.Connection,
    store,
    edition_id: str,
    items: Sequence[ItemUpload],
    strategy: Optional[IngestStrategy] = None,
) -> int:
    """Ingest a batch for one edition. Returns how many items were stored."""
    if not items:
        return 0
    strategy = strategy or SequentialIngest()
    report = strategy.run(conn, store, edition_id, items)
    return report.count
