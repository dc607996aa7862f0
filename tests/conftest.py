import io
from collections.abc import Callable, Generator, Iterable
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path

import psycopg
import pytest
from fastapi.testclient import TestClient
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from qa_portal.api.api_app import create_app
from qa_portal.config.settings import Settings
from qa_portal.database.repositories.record_repository import RecordRepository
from qa_portal.records.exceptions import NotFoundError
from qa_portal.records.kinds import RECORD_KINDS, RecordKind
from qa_portal.records.models import NewRecord, Record, RecordStatus
from qa_portal.records.services import KindServices, build_kind_services
from qa_portal.storage.root import BlobRootHandle

ADMIN_KEY = "test-admin-key"


class InMemoryRecordRepository(RecordRepository):
    """RecordRepository keeping rows in a dict instead of PostgreSQL."""

    def __init__(self, kind: RecordKind) -> None:
        super().__init__(kind)
        self.rows: dict[int, Record] = {}
        self.fail_next_create = False
        self._next_id = 1
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def create(self, record: NewRecord) -> int:
        if self.fail_next_create:
            self.fail_next_create = False
            raise psycopg.OperationalError("connection lost")
        record_id = self._next_id
        self._next_id += 1
        self._clock += timedelta(minutes=1)
        self.rows[record_id] = Record(
            id=record_id,
            kind=self.kind.name,
            title=record.title,
            secondary_date=record.secondary_date,
            file_name=record.file_name,
            file_mimetype=record.file_mimetype,
            status=record.status,
            uploaded_at=self._clock,
            blob=record.blob,
        )
        return record_id

    def find_by_id(self, record_id: int) -> Record:
        if record_id not in self.rows:
            raise NotFoundError(f"{self.kind.label} {record_id} not found")
        return self.rows[record_id]

    def list_by_status(self, status: RecordStatus) -> list[Record]:
        matching = [r for r in self.rows.values() if r.status == status]
        matching.sort(key=lambda r: (r.uploaded_at, r.id), reverse=True)
        return [replace(r, blob=None) for r in matching]

    def set_status(
        self,
        record_id: int,
        new_status: RecordStatus,
        from_statuses: Iterable[RecordStatus],
    ) -> int:
        record = self.rows.get(record_id)
        if record is None or record.status not in set(from_statuses):
            return 0
        self.rows[record_id] = replace(record, status=new_status)
        return 1


@pytest.fixture()
def make_repository() -> Callable[[RecordKind], InMemoryRecordRepository]:
    """Factory for in-memory record repositories, one per kind."""
    return InMemoryRecordRepository


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Exam Notice")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def large_pdf_bytes() -> bytes:
    """Generate a multi-page PDF well above a single stream chunk."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    for page in range(40):
        for line in range(50):
            c.drawString(72, 740 - line * 14, f"Minutes page {page} line {line} " * 3)
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def upload_root(tmp_path: Path) -> Path:
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture()
def blob_root(upload_root: Path) -> BlobRootHandle:
    return BlobRootHandle(path=upload_root)


@pytest.fixture()
def settings(upload_root: Path) -> Settings:
    return Settings(
        _env_file=None,
        admin_api_key=ADMIN_KEY,
        upload_root_candidates=[str(upload_root)],
        stream_chunk_bytes=1024,
    )


@pytest.fixture()
def services(settings: Settings, blob_root: BlobRootHandle) -> dict[str, KindServices]:
    return {
        name: build_kind_services(
            kind, settings, blob_root, repository=InMemoryRecordRepository(kind)
        )
        for name, kind in RECORD_KINDS.items()
    }


@pytest.fixture()
def client(
    settings: Settings,
    services: dict[str, KindServices],
    blob_root: BlobRootHandle,
) -> Generator[TestClient, None, None]:
    app = create_app(settings, services=services, blob_root=blob_root)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return {"X-Api-Key": ADMIN_KEY}
