"""List command: discc list"""

from disc_collector.db import get_connection, init_db
from disc_collector.services.collection import CollectionService


def register(subparsers):
    """Register the list subcommand."""
    parser = subparsers.add_parser(
        "list",
        help="List editions in the discography",
        description="Show every edition, newest release first, with owned/wanted marks.",
    )
    parser.add_argument("--artist", metavar="NAME", help="Filter by artist (exact match)")
    parser.add_argument("--owned", action="store_true", help="Show only purchased editions")
    parser.add_argument("--missing", action="store_true", help="Show only editions not yet purchased")
    parser.set_defaults(func=run)


def run(args):
    """Run the list command."""
    conn = get_connection(args.db_path)
    init_db(conn)

    rows = CollectionService(conn).list_collection()

    if args.artist:
        rows = [r for r in rows if r.artist == args.artist]
    if args.owned:
        rows = [r for r in rows if r.is_purchased]
    elif args.missing:
        rows = [r for r in rows if not r.is_purchased]

    if not rows:
        print("No editions found matching your criteria.")
        return

    print(f"{'Edition':<12}  {'Released':<10}  {'Artist':<12}  {'Title':<24}  {'Edition name':<24}  Own  Want")
    print("-" * 100)

    for r in rows:
        print(
            f"{r.edition_id[:12]:<12}  "
            f"{(r.release_date or '')[:10]:<10}  "
            f"{r.artist[:12]:<12}  "
            f"{r.title[:24]:<24}  "
            f"{(r.display_name or r.edition_name or '')[:24]:<24}  "
            f"{'✓' if r.is_purchased else ' ':^3}  "
            f"{'♥' if r.is_wishlist else ' ':^4}"
        )

    print("-" * 100)
    print(f"Showing {len(rows)} edition(s)")
