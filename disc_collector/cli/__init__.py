"""CLI entry point and subcommand assembly."""

import argparse
import sys

from disc_collector.db import get_db_path


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="discc",
        description="Disc Collector - track albums, editions, wishlist and random items",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--db",
        metavar="PATH",
        help="Database path (default: $HOME/.discc/collection.sqlite, or DISCC_DB env var)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")

    from disc_collector.cli import db_cmd, items, list_cmd, purchase, server, stats, wishlist

    for module in [db_cmd, list_cmd, stats, wishlist, purchase, items, server]:
        module.register(subparsers)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    # Resolve database path
    args.db_path = get_db_path(args.db)

    # Run the command
    args.func(args)
