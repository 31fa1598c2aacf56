"""Collection completion statistics."""

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from disc_collector.db.models import DiscographyRepository
from disc_collector.errors import StorageUnavailable
from disc_collector.utils import round_half_away

log = logging.getLogger(__name__)


@dataclass
class CollectionStats:
    """Rounded purchase percentages: overall, per artist, per country."""
    total: int = 0
    by_artist: List[Tuple[str, int]] = field(default_factory=list)
    by_country: List[Tuple[str, int]] = field(default_factory=list)

    def as_dict(self) -> Dict[str, int]:
        """
        Flat {"total": n, <artist>: n, ..., <country>: n} mapping.

        Artist and country labels share one key space with "total". On a
        collision the later entry wins (countries over artists over total).
        """
        flat = {"total": self.total}
        for label, rate in self.by_artist:
            flat[label] = rate
        for label, rate in self.by_country:
            flat[label] = rate
        return flat


def compute_stats(repo: DiscographyRepository) -> CollectionStats:
    """Run the three ratio queries and round each result."""
    try:
        total = repo.total_purchase_rate()
        by_artist = repo.purchase_rate_by_artist()
        by_country = repo.purchase_rate_by_country()
    except sqlite3.Error as e:
        log.error("Stats query failed: %s", e)
        raise StorageUnavailable("compute_stats", str(e)) from e

    return CollectionStats(
        total=round_half_away(total),
        by_artist=[(label, round_half_away(rate)) for label, rate in by_artist],
        by_country=[(label, round_half_away(rate)) for label, rate in by_country],
    )
