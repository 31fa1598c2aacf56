"""
End-to-end tests for the HTTP API.

Starts the threaded server on an ephemeral port against a temporary
database and talks to it with urllib.

To run: pytest tests/test_server.py -v
"""

import json
import threading
import urllib.error
import urllib.request

import pytest

from disc_collector.cli.db_cmd import load_seed
from disc_collector.cli.server import make_server, parse_multipart
from disc_collector.db.connection import connect
from disc_collector.db.schema import init_db
from disc_collector.services.ingest import SequentialIngest
from disc_collector.services.storage import LocalImageStore, UploadResult


BOUNDARY = "----discTestBoundary7MA4YWxk"


class FlakyStore(LocalImageStore):
    """Local store that rejects one filename."""

    def __init__(self, root, fail_on):
        super().__init__(root)
        self.fail_on = fail_on
        self.calls = []

    def put_object(self, data, content_type, filename=None):
        self.calls.append(filename)
        if filename == self.fail_on:
            return UploadResult.failure("quota exceeded")
        return super().put_object(data, content_type, filename)


def _multipart(fields, files):
    """fields: [(name, value)]; files: [(name, filename, bytes, content_type)]"""
    body = b""
    for name, value in fields:
        body += (
            f"--{BOUNDARY}\r\n"
            f'Content-Disposition: form-data; name="{name}"\r\n\r\n'
            f"{value}\r\n"
        ).encode()
    for name, filename, data, ctype in files:
        body += (
            f"--{BOUNDARY}\r\n"
            f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'
            f"Content-Type: {ctype}\r\n\r\n"
        ).encode() + data + b"\r\n"
    body += f"--{BOUNDARY}--\r\n".encode()
    return body


class APIClient:
    """Minimal HTTP client for the test server (no external deps)."""

    def __init__(self, base_url: str):
        self.base_url = base_url

    def get(self, path: str) -> tuple:
        return self._request(urllib.request.Request(f"{self.base_url}{path}"))

    def get_raw(self, path: str) -> tuple:
        resp = urllib.request.urlopen(f"{self.base_url}{path}", timeout=10)
        return resp.status, resp.headers.get("Content-Type"), resp.read()

    def patch(self, path: str, data) -> tuple:
        body = data if isinstance(data, bytes) else json.dumps(data).encode()
        req = urllib.request.Request(
            f"{self.base_url}{path}", data=body, method="PATCH",
            headers={"Content-Type": "application/json"},
        )
        return self._request(req)

    def upload(self, fields, files) -> tuple:
        req = urllib.request.Request(
            f"{self.base_url}/api/random/upload",
            data=_multipart(fields, files),
            method="POST",
            headers={"Content-Type": f"multipart/form-data; boundary={BOUNDARY}"},
        )
        return self._request(req)

    def _request(self, req) -> tuple:
        try:
            resp = urllib.request.urlopen(req, timeout=10)
            return resp.status, json.loads(resp.read())
        except urllib.error.HTTPError as e:
            return e.code, json.loads(e.read())


def _start(db_path, store):
    server = make_server("127.0.0.1", 0, str(db_path), store=store, strategy=SequentialIngest())
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server


@pytest.fixture
def db_path(tmp_path, seed_data):
    path = tmp_path / "collection.sqlite"
    conn = connect(str(path))
    init_db(conn)
    load_seed(conn, seed_data)
    conn.close()
    return path


@pytest.fixture
def store(tmp_path):
    return FlakyStore(tmp_path / "uploads", fail_on="bad.jpg")


@pytest.fixture
def api(db_path, store):
    server = _start(db_path, store)
    host, port = server.server_address[:2]
    yield APIClient(f"http://{host}:{port}")
    server.shutdown()
    server.server_close()


# =============================================================================
# Read endpoints
# =============================================================================

class TestReadEndpoints:
    def test_discography(self, api):
        status, data = api.get("/api/shinee/discography")
        assert status == 200
        assert [r["editionId"] for r in data][:2] == ["D002-01", "D002-02"]
        row = data[0]
        for key in ("discId", "artist", "title", "releaseDate", "displayName",
                    "price", "currency", "isPurchased", "isWishlist"):
            assert key in row

    def test_stats_empty_purchases(self, api):
        status, data = api.get("/api/stats")
        assert status == 200
        assert data["total"] == 0
        assert data["SHINee"] == 0
        assert data["jp"] == 0

    def test_master_discs(self, api):
        status, data = api.get("/api/master/discs")
        assert status == 200
        assert [d["discId"] for d in data] == ["D001", "D002", "D003", "D004"]

    def test_master_editions(self, api):
        status, data = api.get("/api/master/editions?discId=D001")
        assert status == 200
        assert [e["editionId"] for e in data] == ["D001-01", "D001-02"]

    def test_master_editions_requires_disc(self, api):
        status, data = api.get("/api/master/editions")
        assert status == 400

    def test_wishlist_empty(self, api):
        status, data = api.get("/api/editions/wishlist")
        assert status == 200
        assert data == []

    def test_unknown_route(self, api):
        status, data = api.get("/api/nope")
        assert status == 404


# =============================================================================
# Flag updates
# =============================================================================

class TestFlagEndpoints:
    def test_purchase_then_stats(self, api):
        status, _ = api.patch("/api/editions/D002-01/purchase", {"isPurchased": True})
        assert status == 200
        status, data = api.get("/api/stats")
        assert data["Onew"] == 50
        assert data["total"] == 17

    def test_purchase_toggle_last_wins(self, api):
        api.patch("/api/editions/D001-01/purchase", {"isPurchased": True})
        api.patch("/api/editions/D001-01/purchase", {"isPurchased": False})
        _, rows = api.get("/api/shinee/discography")
        row = next(r for r in rows if r["editionId"] == "D001-01")
        assert row["isPurchased"] is False

    def test_wishlist_toggle(self, api):
        status, _ = api.patch("/api/editions/D003-01/wishlist", {"isWishlist": True})
        assert status == 200
        _, data = api.get("/api/editions/wishlist")
        assert [r["editionId"] for r in data] == ["D003-01"]
        assert data[0]["isWishlist"] is True

    def test_missing_edition_404(self, api):
        status, data = api.patch("/api/editions/NOPE/purchase", {"isPurchased": True})
        assert status == 404
        assert "NOPE" in data["error"]

    def test_missing_field_400(self, api):
        status, _ = api.patch("/api/editions/D001-01/wishlist", {"isPurchased": True})
        assert status == 400

    def test_invalid_json_400(self, api):
        status, data = api.patch("/api/editions/D001-01/purchase", b"{not json")
        assert status == 400
        assert data["error"] == "Invalid JSON"


# =============================================================================
# Random item upload
# =============================================================================

class TestUpload:
    def test_upload_and_list(self, api):
        status, data = api.upload(
            [("discId", "D001"), ("editionId", "D001-01"),
             ("names", "card"), ("memberNames", "Onew"),
             ("names", "postcard"), ("memberNames", "Key")],
            [("images", "one.jpg", b"\xff\xd8first", "image/jpeg"),
             ("images", "two.png", b"\x89PNGsecond", "image/png")],
        )
        assert status == 200
        assert data["count"] == 2

        status, items = api.get("/api/random/items?editionId=D001-01")
        assert status == 200
        assert [(i["itemType"], i["memberName"]) for i in items] == [
            ("card", "Onew"), ("postcard", "Key"),
        ]
        assert all(i["createdAt"] for i in items)

        status, ctype, content = api.get_raw(items[0]["imageUrl"])
        assert status == 200
        assert ctype == "image/jpeg"
        assert content == b"\xff\xd8first"

    def test_empty_slot_skipped(self, api, store):
        status, data = api.upload(
            [("editionId", "D002-01"),
             ("names", "card"), ("memberNames", "Onew"),
             ("names", "card"), ("memberNames", "Key"),
             ("names", "sticker"), ("memberNames", "Minho")],
            [("images", "a.jpg", b"aaa", "image/jpeg"),
             ("images", "", b"", "application/octet-stream"),
             ("images", "c.jpg", b"ccc", "image/jpeg")],
        )
        assert status == 200
        assert data["count"] == 2
        assert store.calls == ["a.jpg", "c.jpg"]
        _, items = api.get("/api/random/items?editionId=D002-01")
        assert [i["memberName"] for i in items] == ["Onew", "Minho"]

    def test_failure_reports_index_and_partial_count(self, api, store):
        status, data = api.upload(
            [("editionId", "D001-02"),
             ("names", "card"), ("memberNames", "Onew"),
             ("names", "card"), ("memberNames", "Key"),
             ("names", "card"), ("memberNames", "Minho")],
            [("images", "ok.jpg", b"1", "image/jpeg"),
             ("images", "bad.jpg", b"2", "image/jpeg"),
             ("images", "never.jpg", b"3", "image/jpeg")],
        )
        assert status == 500
        assert data["index"] == 1
        assert data["stage"] == "upload"
        assert data["persisted"] == 1
        assert "quota exceeded" in data["error"]
        assert "never.jpg" not in store.calls

        _, items = api.get("/api/random/items?editionId=D001-02")
        assert [i["memberName"] for i in items] == ["Onew"]

    def test_misaligned_400(self, api, store):
        status, data = api.upload(
            [("editionId", "D001-01"),
             ("names", "card"), ("names", "card"),
             ("memberNames", "Onew"), ("memberNames", "Key")],
            [("images", "a.jpg", b"1", "image/jpeg")],
        )
        assert status == 400
        assert store.calls == []

    def test_missing_edition_400(self, api):
        status, _ = api.upload([("names", "card"), ("memberNames", "Onew")],
                               [("images", "a.jpg", b"1", "image/jpeg")])
        assert status == 400

    def test_unknown_edition_persist_failure(self, api):
        status, data = api.upload(
            [("editionId", "NOPE"), ("names", "card"), ("memberNames", "Onew")],
            [("images", "a.jpg", b"1", "image/jpeg")],
        )
        assert status == 500
        assert data["stage"] == "persist"
        assert data["persisted"] == 0

    def test_items_unfiltered(self, api):
        api.upload(
            [("editionId", "D001-01"), ("names", "card"), ("memberNames", "Onew")],
            [("images", "a.jpg", b"1", "image/jpeg")],
        )
        api.upload(
            [("editionId", "D002-01"), ("names", "card"), ("memberNames", "Key")],
            [("images", "b.jpg", b"2", "image/jpeg")],
        )
        for query in ("", "?editionId=", "?editionId=undefined"):
            status, items = api.get(f"/api/random/items{query}")
            assert status == 200
            assert len(items) == 2

    def test_upload_path_traversal_404(self, api):
        status, _ = api.get("/uploads/random/..%2F..%2Fcollection.sqlite")
        assert status == 404


# =============================================================================
# Multipart parsing
# =============================================================================

class TestParseMultipart:
    def test_fields_and_files(self):
        body = _multipart(
            [("names[]", "card"), ("names[]", "postcard"), ("editionId", "D001-01")],
            [("images[]", "a.png", b"\x00\x01\r\nbinary", "image/png"),
             ("images[]", "", b"", "application/octet-stream")],
        )
        fields, files = parse_multipart(f"multipart/form-data; boundary={BOUNDARY}", body)

        assert fields["names"] == ["card", "postcard"]
        assert fields["editionId"] == ["D001-01"]
        first, second = files["images"]
        assert first.data == b"\x00\x01\r\nbinary"
        assert first.content_type == "image/png"
        assert first.filename == "a.png"
        assert second.is_empty
        assert second.filename is None

    def test_quoted_boundary(self):
        body = _multipart([("editionId", "X")], [])
        fields, _ = parse_multipart(f'multipart/form-data; boundary="{BOUNDARY}"', body)
        assert fields["editionId"] == ["X"]

    def test_missing_boundary(self):
        from disc_collector.errors import ValidationFailed

        with pytest.raises(ValidationFailed):
            parse_multipart("multipart/form-data", b"")
