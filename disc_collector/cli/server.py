"""Web API server: discc serve"""

import json
import logging
import re
import sqlite3
import sys
from functools import partial
from http.server import BaseHTTPRequestHandler, HTTPServer
from socketserver import ThreadingMixIn
from urllib.parse import parse_qs, unquote, urlparse

from disc_collector.db.connection import connect, get_db_path
from disc_collector.db.models import DiscographyRepository
from disc_collector.db.schema import init_db
from disc_collector.errors import (
    CollectorError,
    IngestFailed,
    NotFound,
    ValidationFailed,
)
from disc_collector.services.collection import CollectionService
from disc_collector.services.ingest import (
    ImagePayload,
    SequentialIngest,
    TransactionalIngest,
    build_items,
    ingest,
)
from disc_collector.services.stats import compute_stats
from disc_collector.services.storage import LOCAL_URL_PREFIX, LocalImageStore, get_blob_store
from disc_collector.utils import parse_bool

log = logging.getLogger(__name__)

_EDITION_FLAG_RE = re.compile(r"^/api/editions/([^/]+)/(purchase|wishlist)$")


def parse_multipart(content_type: str, body: bytes):
    """
    Split a multipart/form-data body into text fields and file parts.

    Returns (fields, files): each maps a field name to the list of values in
    submission order. A trailing "[]" on a field name is dropped. A file part
    with no filename chosen becomes an empty ImagePayload in its slot.
    """
    match = re.search(r'boundary="?([^";]+)"?', content_type)
    if not match:
        raise ValidationFailed("Missing multipart boundary")
    boundary = match.group(1).strip()

    fields = {}
    files = {}
    for part in body.split(f"--{boundary}".encode()):
        if not part or part.strip() in (b"--", b""):
            continue

        header_end = part.find(b"\r\n\r\n")
        if header_end == -1:
            continue
        header_str = part[:header_end].decode("utf-8", errors="replace")
        content = part[header_end + 4:]
        if content.endswith(b"\r\n"):
            content = content[:-2]

        name_match = re.search(r'\bname="([^"]*)"', header_str)
        if not name_match:
            continue
        name = name_match.group(1)
        if name.endswith("[]"):
            name = name[:-2]

        filename_match = re.search(r'filename="([^"]*)"', header_str)
        if filename_match is None:
            fields.setdefault(name, []).append(content.decode("utf-8", errors="replace"))
            continue

        filename = filename_match.group(1)
        ctype_match = re.search(r"Content-Type:\s*([^\r\n]+)", header_str, re.IGNORECASE)
        content_type_part = ctype_match.group(1).strip() if ctype_match else "application/octet-stream"
        files.setdefault(name, []).append(ImagePayload(
            data=content if filename else b"",
            content_type=content_type_part,
            filename=filename or None,
        ))

    return fields, files


class ThreadingHTTPServer(ThreadingMixIn, HTTPServer):
    daemon_threads = True


class CollectionHandler(BaseHTTPRequestHandler):
    """HTTP handler for the collection API."""

    def __init__(self, db_path: str, store, strategy, *args, **kwargs):
        self.db_path = db_path
        self.store = store
        self.strategy = strategy
        super().__init__(*args, **kwargs)

    def do_GET(self):
        parsed = urlparse(self.path)
        path = parsed.path
        params = parse_qs(parsed.query)

        if path == "/api/shinee/discography":
            self._run(self._api_discography)
        elif path == "/api/stats":
            self._run(self._api_stats)
        elif path == "/api/editions/wishlist":
            self._run(self._api_wishlist)
        elif path == "/api/master/discs":
            self._run(self._api_discs)
        elif path == "/api/master/editions":
            disc_id = params.get("discId", [""])[0]
            self._run(self._api_editions, disc_id)
        elif path == "/api/random/items":
            edition_id = params.get("editionId", [None])[0]
            self._run(self._api_random_items, edition_id)
        elif path.startswith(LOCAL_URL_PREFIX + "/"):
            self._serve_upload(unquote(path[len(LOCAL_URL_PREFIX) + 1:]))
        else:
            self._send_json({"error": "Not found"}, 404)

    def do_POST(self):
        path = urlparse(self.path).path

        if path == "/api/random/upload":
            self._run(self._api_random_upload)
        else:
            self._send_json({"error": "Not found"}, 404)

    def do_PATCH(self):
        path = urlparse(self.path).path

        match = _EDITION_FLAG_RE.match(path)
        if match:
            edition_id = unquote(match.group(1))
            data = self._read_json_body()
            if data is None:
                return
            self._run(self._api_set_flag, edition_id, match.group(2), data)
        else:
            self._send_json({"error": "Not found"}, 404)

    def _run(self, handler, *args):
        """Open a connection, run an endpoint, map service errors to statuses."""
        conn = None
        try:
            conn = connect(self.db_path)
            init_db(conn)
            handler(conn, *args)
        except NotFound as e:
            self._send_json({"error": str(e)}, 404)
        except ValidationFailed as e:
            self._send_json({"error": str(e)}, 400)
        except IngestFailed as e:
            self._send_json({
                "error": str(e),
                "index": e.index,
                "stage": e.stage,
                "persisted": e.persisted,
            }, 500)
        except CollectorError as e:
            self._send_json({"error": str(e)}, 500)
        except sqlite3.Error as e:
            log.error("Database error on %s: %s", self.path, e)
            self._send_json({"error": f"Storage unavailable: {e}"}, 500)
        finally:
            if conn is not None:
                conn.close()

    def _api_discography(self, conn):
        rows = CollectionService(conn).list_collection()
        self._send_json([r.to_dict() for r in rows])

    def _api_wishlist(self, conn):
        rows = CollectionService(conn).list_wishlist()
        self._send_json([r.to_dict() for r in rows])

    def _api_stats(self, conn):
        stats = compute_stats(DiscographyRepository(conn))
        self._send_json(stats.as_dict())

    def _api_discs(self, conn):
        discs = CollectionService(conn).list_discs()
        self._send_json([d.to_dict() for d in discs])

    def _api_editions(self, conn, disc_id: str):
        if not disc_id:
            raise ValidationFailed("discId is required")
        editions = CollectionService(conn).list_editions(disc_id)
        self._send_json([e.to_dict() for e in editions])

    def _api_random_items(self, conn, edition_id):
        items = CollectionService(conn).list_random_items(edition_id)
        self._send_json([i.to_dict() for i in items])

    def _api_set_flag(self, conn, edition_id: str, flag: str, data: dict):
        key = "isPurchased" if flag == "purchase" else "isWishlist"
        value = parse_bool(data.get(key)) if isinstance(data, dict) else None
        if value is None:
            raise ValidationFailed(f"Expected JSON body {{\"{key}\": true|false}}")

        service = CollectionService(conn)
        if flag == "purchase":
            service.set_purchased(edition_id, value)
        else:
            service.set_wishlist(edition_id, value)
        self._send_json({"ok": True})

    def _api_random_upload(self, conn):
        """Bulk-register random items with their images."""
        content_type = self.headers.get("Content-Type", "")
        if "multipart/form-data" not in content_type:
            raise ValidationFailed("Expected multipart/form-data")

        content_length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(content_length)
        fields, files = parse_multipart(content_type, body)

        edition_id = (fields.get("editionId") or [""])[0].strip()
        if not edition_id:
            raise ValidationFailed("editionId is required")

        items = build_items(
            fields.get("names", []),
            fields.get("memberNames", []),
            files.get("images", []),
        )
        count = ingest(conn, self.store, edition_id, items, strategy=self.strategy)
        self._send_json({"message": f"Saved {count} item(s)", "count": count})

    _CONTENT_TYPES = {
        ".gif": "image/gif",
        ".jpeg": "image/jpeg",
        ".jpg": "image/jpeg",
        ".png": "image/png",
        ".webp": "image/webp",
    }

    def _serve_upload(self, name: str):
        if not isinstance(self.store, LocalImageStore):
            self._send_json({"error": "Not found"}, 404)
            return
        filepath = self.store.resolve(name)
        if filepath is None:
            self._send_json({"error": "Not found"}, 404)
            return
        content = filepath.read_bytes()
        content_type = self._CONTENT_TYPES.get(filepath.suffix.lower(), "application/octet-stream")
        self.send_response(200)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(content)))
        self.end_headers()
        self.wfile.write(content)

    def _read_json_body(self):
        content_length = int(self.headers.get("Content-Length", 0))
        if content_length == 0:
            self._send_json({"error": "Expected a JSON body"}, 400)
            return None
        body = self.rfile.read(content_length)
        try:
            return json.loads(body)
        except json.JSONDecodeError:
            self._send_json({"error": "Invalid JSON"}, 400)
            return None

    def _send_json(self, obj, status=200):
        body = json.dumps(obj, ensure_ascii=False).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        # Quieter logging: just method and path
        sys.stderr.write(f"{args[0]}\n")


def make_server(host: str, port: int, db_path: str, store=None, strategy=None) -> ThreadingHTTPServer:
    """Build (but don't start) the threaded API server."""
    conn = connect(db_path)
    init_db(conn)
    conn.close()

    store = store if store is not None else get_blob_store()
    strategy = strategy or SequentialIngest()
    handler = partial(CollectionHandler, db_path, store, strategy)
    return ThreadingHTTPServer((host, port), handler)


def register(subparsers):
    """Register the serve subcommand."""
    parser = subparsers.add_parser(
        "serve",
        help="Start the collection web API",
        description="Start a local HTTP server exposing the collection API.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8080,
        help="Port to serve on (default: 8080)",
    )
    parser.add_argument(
        "--host",
        default="",
        help="Interface to bind (default: all)",
    )
    parser.add_argument(
        "--transactional",
        action="store_true",
        help="All-or-nothing uploads: roll back the whole batch if any item fails",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging",
    )
    parser.set_defaults(func=run)


def run(args):
    """Run the serve command."""
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db_path = get_db_path(getattr(args, "db_path", None))
    store = get_blob_store()
    strategy = TransactionalIngest() if args.transactional else SequentialIngest()

    server = make_server(args.host, args.port, db_path, store=store, strategy=strategy)

    print(f"Server running at http://localhost:{args.port}")
    print(f"Database: {db_path}")
    print(f"Image store: {type(store).__name__}")
    print("Press Ctrl+C to stop.")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\nShutting down.")
        server.server_close()
