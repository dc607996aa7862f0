from dataclasses import dataclass

from qa_portal.records.models import RecordStatus


@dataclass(frozen=True)
class UploadMetadata:
    """Form fields submitted alongside the file."""

    title: str | None
    secondary_date: str | None


@dataclass(frozen=True)
class IncomingFile:
    """An upload accepted by the transport layer."""

    file_name: str
    mime_type: str
    data: bytes


@dataclass(frozen=True)
class IngestResult:
    id: int
    status: RecordStatus
    title: str
    secondary_date: str
    file_name: str
