"""Services for Disc Collector."""

from disc_collector.services.collection import CollectionService
from disc_collector.services.ingest import ingest
from disc_collector.services.stats import compute_stats
from disc_collector.services.storage import get_blob_store

__all__ = ["CollectionService", "compute_stats", "get_blob_store", "ingest"]
