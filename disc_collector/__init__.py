"""Disc Collector - track albums, editions and random items."""

__version__ = "1.0.0"
