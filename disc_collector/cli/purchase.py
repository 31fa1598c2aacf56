"""Purchase command: discc purchase"""

import sys

from disc_collector.db import get_connection, init_db
from disc_collector.errors import NotFound
from disc_collector.services.collection import CollectionService


def register(subparsers):
    """Register the purchase subcommand."""
    parser = subparsers.add_parser(
        "purchase",
        help="Mark an edition as purchased (or not)",
        description="Set or clear the purchased flag on an edition.",
    )
    parser.add_argument("edition_id", help="Edition ID")
    parser.add_argument(
        "--undo", action="store_true", help="Clear the purchased flag instead"
    )
    parser.set_defaults(func=run)


def run(args):
    """Run the purchase command."""
    conn = get_connection(args.db_path)
    init_db(conn)

    value = not args.undo
    try:
        CollectionService(conn).set_purchased(args.edition_id, value)
    except NotFound as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"{args.edition_id}: {'purchased' if value else 'not purchased'}")
