"""Stats command: discc stats"""

import sys

from disc_collector.db import DiscographyRepository, get_connection, init_db
from disc_collector.errors import StorageUnavailable
from disc_collector.services.stats import compute_stats


def register(subparsers):
    """Register the stats subcommand."""
    parser = subparsers.add_parser(
        "stats",
        help="Show collection completion statistics",
        description="Display purchase percentages overall, per artist and per country.",
    )
    parser.set_defaults(func=run)


def run(args):
    """Run the stats command."""
    conn = get_connection(args.db_path)
    init_db(conn)

    try:
        stats = compute_stats(DiscographyRepository(conn))
    except StorageUnavailable as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print()
    print("=" * 50)
    print("COLLECTION COMPLETION".center(50))
    print("=" * 50)
    print()

    print(f"Overall:           {stats.total:>3}%")
    print()

    if stats.by_artist:
        print("By Artist:")
        for artist, rate in stats.by_artist:
            print(f"  {artist:<20} {rate:>3}%")
        print()

    if stats.by_country:
        print("By Country:")
        for country, rate in stats.by_country:
            print(f"  {country:<20} {rate:>3}%")
        print()

    print("=" * 50)
