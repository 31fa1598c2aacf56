"""Database management commands: discc db init/seed"""

import json
import sys

from disc_collector.db import DiscRepository, EditionRepository, SCHEMA_VERSION, get_connection, init_db
from disc_collector.db.models import Disc, Edition


def register(subparsers):
    """Register the db subcommand."""
    db_parser = subparsers.add_parser("db", help="Database management commands")
    db_subparsers = db_parser.add_subparsers(dest="db_command", metavar="<subcommand>")

    # db init
    init_parser = db_subparsers.add_parser("init", help="Initialize the database")
    init_parser.add_argument(
        "--force", action="store_true", help="Drop and recreate all tables"
    )
    init_parser.set_defaults(func=run_init)

    # db seed
    seed_parser = db_subparsers.add_parser(
        "seed", help="Load discs and editions from a JSON file"
    )
    seed_parser.add_argument("file", help='JSON file: {"discs": [...], "editions": [...]}')
    seed_parser.set_defaults(func=run_seed)

    db_parser.set_defaults(func=lambda args: db_parser.print_help())


def run_init(args):
    """Initialize the database."""
    conn = get_connection(args.db_path)

    created = init_db(conn, force=args.force)

    if created:
        print(f"Database initialized at: {args.db_path}")
        print(f"Schema version: {SCHEMA_VERSION}")
    else:
        print(f"Database already up to date (version {SCHEMA_VERSION})")
        print(f"Location: {args.db_path}")


def load_seed(conn, data: dict):
    """
    Upsert discs and editions from a seed document.

    Keys are the same camelCase names the API returns. Existing editions keep
    their purchase/wishlist flags unless the record sets them.

    Returns (disc_count, edition_count).
    """
    disc_repo = DiscRepository(conn)
    edition_repo = EditionRepository(conn)

    discs = data.get("discs", [])
    for d in discs:
        disc_repo.upsert(Disc(
            disc_id=d["discId"],
            artist=d["artist"],
            title=d["title"],
            title_sub=d.get("titleSub"),
            category=d.get("category"),
            country=d.get("country"),
            release_date=d.get("releaseDate"),
        ))

    editions = data.get("editions", [])
    for e in editions:
        has_flags = "isPurchased" in e or "isWishlist" in e
        edition_repo.upsert(Edition(
            edition_id=e["editionId"],
            disc_id=e["discId"],
            edition_name=e.get("editionName"),
            display_name=e.get("displayName"),
            price=e.get("price"),
            currency=e.get("currency"),
            remarks=e.get("remarks"),
            tracklist=e.get("tracklist"),
            benefit=e.get("benefit"),
            video_content=e.get("videoContent"),
            is_purchased=bool(e.get("isPurchased", False)),
            is_wishlist=bool(e.get("isWishlist", False)),
        ), keep_flags=not has_flags)

    conn.commit()
    return len(discs), len(editions)


def run_seed(args):
    """Load a seed file into the database."""
    with open(args.file, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            print(f"Error: {args.file} is not valid JSON: {e}", file=sys.stderr)
            sys.exit(1)

    conn = get_connection(args.db_path)
    init_db(conn)

    try:
        disc_count, edition_count = load_seed(conn, data)
    except KeyError as e:
        conn.rollback()
        print(f"Error: seed record missing required field {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Loaded {disc_count} disc(s) and {edition_count} edition(s)")
