"""Shared utilities for Disc Collector."""

import math
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


def get_home() -> Path:
    """Return the data home directory (DISCC_HOME env or ~/.discc)."""
    if "DISCC_HOME" in os.environ:
        return Path(os.environ["DISCC_HOME"])
    return Path.home() / ".discc"


def now_iso() -> str:
    """Return current time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def round_half_away(value: Optional[float]) -> int:
    """
    Round to the nearest integer, halves away from zero.

    None (an undefined ratio, e.g. over an empty table) rounds to 0.
    Python's round() uses banker's rounding, so 74.5 would become 74.
    """
    if value is None:
        return 0
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def parse_bool(value) -> Optional[bool]:
    """Coerce a JSON/form value to bool. Returns None if it isn't one."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no"):
            return False
    return None
