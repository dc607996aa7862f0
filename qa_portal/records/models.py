from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum


class RecordStatus(IntEnum):
    """Lifecycle status persisted in the status column."""

    REJECTED = -1
    DELETED = 0
    APPROVED = 1
    PENDING = 2


@dataclass(frozen=True)
class FilesystemBlobRef:
    """Payload stored as a file, path relative to the blob root."""

    path: str


@dataclass(frozen=True)
class InlineBlobRef:
    """Payload stored inline in the record row."""

    data: bytes


BlobRef = FilesystemBlobRef | InlineBlobRef


@dataclass(frozen=True)
class CallerContext:
    """Verified facts about the caller, produced by the auth dependency."""

    is_privileged: bool = False


ANONYMOUS = CallerContext(is_privileged=False)
ADMIN = CallerContext(is_privileged=True)


@dataclass(frozen=True)
class NewRecord:
    """Fields for a record insert. The store assigns id and uploaded_at."""

    title: str
    secondary_date: str
    file_name: str
    file_mimetype: str
    blob: BlobRef
    status: RecordStatus


@dataclass(frozen=True)
class Record:
    """A stored notice, survey or minutes record.

    blob is None for listing rows, which never carry payload bytes.
    """

    id: int
    kind: str
    title: str
    secondary_date: str
    file_name: str
    file_mimetype: str
    status: RecordStatus
    uploaded_at: datetime | None = None
    blob: BlobRef | None = None
