"""Image blob storage.

Two stores share one contract: put_object() returns an UploadResult instead
of raising, so a failed file is a value the ingestion loop can inspect.

SupabaseStorage talks to the Supabase Storage REST API. LocalImageStore
writes under <DISCC_HOME>/uploads/random and is what you get when SB_URL /
SB_KEY aren't configured.
"""

import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests

from disc_collector.utils import get_home

log = logging.getLogger(__name__)

DEFAULT_BUCKET = "RandomItem"
LOCAL_URL_PREFIX = "/uploads/random"


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a single put_object call: a public URL or a failure reason."""
    url: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.url is not None

    @classmethod
    def success(cls, url: str) -> "UploadResult":
        return cls(url=url)

    @classmethod
    def failure(cls, reason: str) -> "UploadResult":
        return cls(error=reason)


def _object_name(filename: Optional[str]) -> str:
    """Unique object name, keeping the submitted file's extension."""
    ext = Path(filename).suffix.lower() if filename else ""
    return f"{uuid.uuid4()}{ext}"


class SupabaseStorage:
    """Interface to Supabase Storage."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        bucket: str = DEFAULT_BUCKET,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
    ):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_key}",
            "apikey": api_key,
        })

    def public_url(self, name: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{name}"

    def put_object(self, data: bytes, content_type: str, filename: Optional[str] = None) -> UploadResult:
        """Upload bytes under a fresh UUID name and return its public URL."""
        name = _object_name(filename)
        upload_url = f"{self.base_url}/storage/v1/object/{self.bucket}/{name}"
        try:
            response = self.session.post(
                upload_url,
                data=data,
                headers={"Content-Type": content_type or "application/octet-stream"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            return UploadResult.failure(f"{type(e).__name__}: {e}")

        if not response.ok:
            return UploadResult.failure(
                f"HTTP {response.status_code} from storage: {response.text[:200]}"
            )

        url = self.public_url(name)
        log.debug("Uploaded %d bytes to %s", len(data), url)
        return UploadResult.success(url)

    def delete_object(self, url: str) -> bool:
        """Remove an object previously returned by put_object."""
        prefix = self.public_url("")
        if not url.startswith(prefix):
            return False
        name = url[len(prefix):]
        try:
            response = self.session.delete(
                f"{self.base_url}/storage/v1/object/{self.bucket}/{name}",
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            log.warning("Could not delete %s: %s", url, e)
            return False
        if not response.ok:
            log.warning("Could not delete %s: HTTP %d", url, response.status_code)
        return response.ok


class LocalImageStore:
    """Stores images on disk; URLs are served by the HTTP server."""

    def __init__(self, root: Optional[Path] = None, url_prefix: str = LOCAL_URL_PREFIX):
        self.root = Path(root) if root else get_local_upload_dir()
        self.url_prefix = url_prefix.rstrip("/")

    def put_object(self, data: bytes, content_type: str, filename: Optional[str] = None) -> UploadResult:
        name = _object_name(filename)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            (self.root / name).write_bytes(data)
        except OSError as e:
            return UploadResult.failure(f"{type(e).__name__}: {e}")
        return UploadResult.success(f"{self.url_prefix}/{name}")

    def delete_object(self, url: str) -> bool:
        if not url.startswith(self.url_prefix + "/"):
            return False
        path = self.root / url[len(self.url_prefix) + 1:]
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def resolve(self, name: str) -> Optional[Path]:
        """Path for a stored image name, or None if missing or outside the root."""
        path = self.root / name
        if not path.resolve().is_relative_to(self.root.resolve()):
            return None
        if not path.is_file():
            return None
        return path


def get_local_upload_dir() -> Path:
    return get_home() / "uploads" / "random"


def get_blob_store():
    """Supabase when SB_URL and SB_KEY are set, otherwise local disk."""
    base_url = os.environ.get("SB_URL")
    api_key = os.environ.get("SB_KEY")
    if base_url and api_key:
        bucket = os.environ.get("SB_BUCKET", DEFAULT_BUCKET)
        return SupabaseStorage(base_url, api_key, bucket=bucket)
    return LocalImageStore()
