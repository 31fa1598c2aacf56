"""Error types raised by the service layer."""

from typing import Optional


class CollectorError(Exception):
    """Base class for all Disc Collector errors."""


class NotFound(CollectorError):
    """A flag update targeted an edition that doesn't exist."""

    def __init__(self, edition_id: str):
        self.edition_id = edition_id
        super().__init__(f"Edition not found: {edition_id}")


class StorageUnavailable(CollectorError):
    """A database call could not be executed."""

    def __init__(self, operation: str, detail: Optional[str] = None):
        self.operation = operation
        self.detail = detail
        msg = f"Storage unavailable during {operation}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class UploadFailed(CollectorError):
    """The blob store rejected or could not accept a payload."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Upload failed: {reason}")


class ValidationFailed(CollectorError):
    """Request input is malformed (e.g. misaligned ingestion arrays)."""


class IngestFailed(CollectorError):
    """
    A batch ingestion aborted partway through.

    Rows written before the failing index stay written unless the strategy
    says otherwise; `persisted` tells the caller how many are still there.
    """

    def __init__(
        self,
        edition_id: str,
        index: int,
        stage: str,
        persisted: int,
        cause: CollectorError,
    ):
        self.edition_id = edition_id
        self.index = index  # 0-based input position
        self.stage = stage  # "upload" or "persist"
        self.persisted = persisted
        self.cause = cause
        super().__init__(
            f"Ingest for edition {edition_id} failed at item {index + 1} "
            f"({stage}): {cause}; {persisted} item(s) saved before the failure"
        )
