from typing import Any

from pydantic import BaseModel

from qa_portal.ingestion.models import IngestResult
from qa_portal.records.kinds import RecordKind
from qa_portal.records.models import Record, RecordStatus


class DecisionRequest(BaseModel):
    action: str | None = None


class HealthResponse(BaseModel):
    status: str
    database: bool
    blob_root: str | None
    timestamp: str


def record_item(kind: RecordKind, record: Record) -> dict[str, Any]:
    """Public listing shape for a record; never includes payload bytes."""
    return {
        "id": record.id,
        "kind": kind.name,
        "title": record.title,
        kind.date_field: record.secondary_date,
        "fileName": record.file_name,
        "status": int(record.status),
        "uploadedAt": record.uploaded_at.isoformat() if record.uploaded_at else None,
        "link": f"/api/{kind.slug}/file/{record.id}",
        "downloadLink": f"/api/{kind.slug}/download/{record.id}",
    }


def upload_message(kind: RecordKind, status: RecordStatus) -> str:
    if status == RecordStatus.PENDING:
        return f"{kind.label} submitted for admin approval."
    return f"{kind.label} uploaded successfully"


def upload_response(kind: RecordKind, result: IngestResult) -> dict[str, Any]:
    return {
        "message": upload_message(kind, result.status),
        "id": result.id,
        "status": int(result.status),
        "fileInfo": {
            "id": result.id,
            "title": result.title,
            kind.date_field: result.secondary_date,
            "filename": result.file_name,
        },
    }
