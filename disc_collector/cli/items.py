"""Random item commands: discc items list/add"""

import mimetypes
import sys
from pathlib import Path

from disc_collector.db import get_connection, init_db
from disc_collector.errors import IngestFailed, ValidationFailed
from disc_collector.services.collection import CollectionService
from disc_collector.services.ingest import (
    ImagePayload,
    SequentialIngest,
    TransactionalIngest,
    build_items,
    ingest,
)
from disc_collector.services.storage import get_blob_store


def register(subparsers):
    """Register the items subcommand."""
    parser = subparsers.add_parser(
        "items",
        help="List or add random items (trading cards etc.)",
        description="Manage random items attached to editions.",
    )
    sub = parser.add_subparsers(dest="items_action", metavar="<action>")

    list_parser = sub.add_parser("list", help="List random items")
    list_parser.add_argument("--edition", metavar="ID", help="Only items for this edition")

    add_parser = sub.add_parser(
        "add",
        help="Upload images as random items for an edition",
        description="Each --item is KIND:MEMBER:IMAGE_PATH, e.g. card:Onew:scan1.jpg",
    )
    add_parser.add_argument("edition_id", help="Edition ID")
    add_parser.add_argument(
        "--item", dest="items", action="append", required=True, metavar="KIND:MEMBER:PATH",
        help="Item to add (repeatable)",
    )
    add_parser.add_argument(
        "--transactional", action="store_true",
        help="Roll back the whole batch if any item fails",
    )

    parser.set_defaults(func=run)


def run(args):
    """Run the items command."""
    if not args.items_action:
        print("Usage: discc items {list,add}")
        return

    conn = get_connection(args.db_path)
    init_db(conn)

    if args.items_action == "list":
        _list(conn, args.edition)
    elif args.items_action == "add":
        _add(conn, args)


def _list(conn, edition_id):
    items = CollectionService(conn).list_random_items(edition_id)
    if not items:
        print("No random items found.")
        return

    print(f"{'ID':>6}  {'Edition':<12}  {'Type':<14}  {'Member':<10}  {'Added':<20}  Image")
    print("-" * 110)
    for i in items:
        print(
            f"{i.item_id:>6}  "
            f"{i.edition_id[:12]:<12}  "
            f"{(i.item_type or '')[:14]:<14}  "
            f"{(i.member_name or '')[:10]:<10}  "
            f"{(i.created_at or '')[:19]:<20}  "
            f"{i.image_url}"
        )
    print("-" * 110)
    print(f"Showing {len(items)} item(s)")


def _parse_item_spec(spec: str):
    """KIND:MEMBER:PATH -> (kind, member, ImagePayload). PATH may contain colons."""
    parts = spec.split(":", 2)
    if len(parts) != 3 or not parts[2]:
        raise ValidationFailed(f"Bad --item '{spec}', expected KIND:MEMBER:PATH")
    kind, member, path_str = parts
    path = Path(path_str).expanduser()
    if not path.is_file():
        raise ValidationFailed(f"Image not found: {path}")
    content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return kind, member, ImagePayload(path.read_bytes(), content_type, path.name)


def _add(conn, args):
    try:
        parsed = [_parse_item_spec(s) for s in args.items]
    except ValidationFailed as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    kinds, members, payloads = zip(*parsed)
    batch = build_items(kinds, members, payloads)
    strategy = TransactionalIngest() if args.transactional else SequentialIngest()

    try:
        count = ingest(conn, get_blob_store(), args.edition_id, batch, strategy=strategy)
    except IngestFailed as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Saved {count} item(s) for edition {args.edition_id}")
