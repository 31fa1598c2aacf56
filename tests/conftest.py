"""Shared fixtures: fresh in-memory database, optionally seeded."""

import sqlite3

import pytest

from disc_collector.cli.db_cmd import load_seed
from disc_collector.db.schema import init_db

SEED = {
    "discs": [
        {"discId": "D001", "artist": "SHINee", "title": "HUNTER", "category": "album",
         "country": "kr", "releaseDate": "2023-01-01"},
        {"discId": "D002", "artist": "Onew", "title": "DICE", "category": "single",
         "country": "jp", "releaseDate": "2023-06-01"},
        {"discId": "D003", "artist": "Key", "title": "Gasoline", "category": "album",
         "country": "kr", "releaseDate": "2022-08-30"},
        {"discId": "D004", "artist": "Minho", "title": "CALL BACK", "category": "album",
         "country": "jp", "releaseDate": "2023-01-01"},
    ],
    "editions": [
        {"editionId": "D001-02", "discId": "D001", "editionName": "photobook",
         "displayName": "Photobook Ver.", "price": 25000, "currency": "krw"},
        {"editionId": "D001-01", "discId": "D001", "editionName": "digipack",
         "displayName": "Digipack Ver.", "price": 15000, "currency": "krw"},
        {"editionId": "D002-01", "discId": "D002", "editionName": "limited",
         "displayName": "Limited A", "price": 3000, "currency": "jpy"},
        {"editionId": "D002-02", "discId": "D002", "editionName": "regular",
         "displayName": "Regular", "price": 1500, "currency": "jpy"},
        {"editionId": "D003-01", "discId": "D003", "editionName": "regular",
         "displayName": "Regular"},
        {"editionId": "D004-01", "discId": "D004", "editionName": "regular",
         "displayName": "Regular"},
    ],
}


@pytest.fixture
def conn():
    """Create a fresh in-memory database with current schema."""
    c = sqlite3.connect(":memory:")
    c.row_factory = sqlite3.Row
    c.execute("PRAGMA foreign_keys = ON")
    init_db(c)
    yield c
    c.close()


@pytest.fixture
def seeded(conn):
    """Database with four discs and six editions, nothing purchased."""
    load_seed(conn, SEED)
    return conn


@pytest.fixture
def seed_data():
    """The seed document itself, for tests that build their own database."""
    return SEED
