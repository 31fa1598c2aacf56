"""Wishlist command: discc wishlist"""

import sys

from disc_collector.db import get_connection, init_db
from disc_collector.errors import NotFound
from disc_collector.services.collection import CollectionService


def register(subparsers):
    """Register the wishlist subcommand."""
    parser = subparsers.add_parser(
        "wishlist",
        help="Manage your wishlist",
        description="List wanted editions, or add/remove an edition from the wishlist.",
    )
    sub = parser.add_subparsers(dest="wishlist_action", metavar="<action>")

    sub.add_parser("list", help="List wishlisted editions")

    add_parser = sub.add_parser("add", help="Mark an edition as wanted")
    add_parser.add_argument("edition_id", help="Edition ID")

    remove_parser = sub.add_parser("remove", help="Unmark an edition")
    remove_parser.add_argument("edition_id", help="Edition ID")

    parser.set_defaults(func=run)


def run(args):
    """Run the wishlist command."""
    if not args.wishlist_action:
        print("Usage: discc wishlist {list,add,remove}")
        return

    conn = get_connection(args.db_path)
    init_db(conn)
    service = CollectionService(conn)

    if args.wishlist_action == "list":
        _list(service)
        return

    value = args.wishlist_action == "add"
    try:
        service.set_wishlist(args.edition_id, value)
    except NotFound as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    verb = "Added to" if value else "Removed from"
    print(f"{verb} wishlist: {args.edition_id}")


def _list(service):
    rows = service.list_wishlist()
    if not rows:
        print("Wishlist is empty.")
        return

    for r in rows:
        name = r.display_name or r.edition_name or ""
        price = f"  {r.price:,} {r.currency or ''}".rstrip() if r.price is not None else ""
        print(f"{r.edition_id:<12}  {r.artist} - {r.title}  [{name}]{price}")

    print(f"\n{len(rows)} wanted edition(s)")
