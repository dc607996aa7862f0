from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import psycopg
import pytest

from qa_portal.database.repositories.record_repository import RecordRepository
from qa_portal.records.exceptions import NotFoundError, StorageError
from qa_portal.records.kinds import NOTICE, SURVEY, RecordKind
from qa_portal.records.models import (
    ADMIN,
    ANONYMOUS,
    BlobRef,
    FilesystemBlobRef,
    InlineBlobRef,
    NewRecord,
    RecordStatus,
)
from qa_portal.retrieval.resolver import Disposition, RetrievalResolver, is_visible
from qa_portal.storage.filesystem_store import FilesystemBlobStore
from qa_portal.storage.inline_store import InlineBlobStore
from qa_portal.storage.root import BlobRootHandle

RepositoryFactory = Callable[[RecordKind], RecordRepository]


def _seed(
    repo: RecordRepository,
    status: RecordStatus,
    blob: BlobRef,
    title: str = "Exam Notice",
    file_name: str = "exam.pdf",
) -> int:
    return repo.create(
        NewRecord(
            title=title,
            secondary_date="2024-05-01",
            file_name=file_name,
            file_mimetype="application/pdf",
            blob=blob,
            status=status,
        )
    )


def _inline_resolver(
    make_repository: RepositoryFactory,
) -> tuple[RetrievalResolver, RecordRepository]:
    repo = make_repository(NOTICE)
    resolver = RetrievalResolver(repo, InlineBlobStore(), chunk_size=4)
    return resolver, repo


def _filesystem_resolver(
    root: Path,
    make_repository: RepositoryFactory,
) -> tuple[RetrievalResolver, RecordRepository, FilesystemBlobStore]:
    repo = make_repository(SURVEY)
    store = FilesystemBlobStore(BlobRootHandle(path=root))
    resolver = RetrievalResolver(repo, store, chunk_size=4)
    return resolver, repo, store


class TestVisibility:
    @pytest.mark.parametrize(
        ("status", "anonymous", "admin"),
        [
            (RecordStatus.APPROVED, True, True),
            (RecordStatus.PENDING, False, True),
            (RecordStatus.REJECTED, False, False),
            (RecordStatus.DELETED, False, False),
        ],
    )
    def test_policy(
        self,
        status: RecordStatus,
        anonymous: bool,
        admin: bool,
        make_repository: RepositoryFactory,
    ) -> None:
        repo = make_repository(NOTICE)
        record = repo.find_by_id(_seed(repo, status, InlineBlobRef(data=b"x")))

        assert is_visible(record, ANONYMOUS) is anonymous
        assert is_visible(record, ADMIN) is admin


class TestResolveInline:
    def test_approved_record_is_public(
        self, make_repository: RepositoryFactory
    ) -> None:
        resolver, repo = _inline_resolver(make_repository)
        record_id = _seed(repo, RecordStatus.APPROVED, InlineBlobRef(data=b"%PDF-bytes"))

        resolved = resolver.resolve(record_id, ANONYMOUS)

        assert resolved.mime_type == "application/pdf"
        assert resolved.display_name == "exam.pdf"
        assert resolved.disposition is Disposition.INLINE
        assert resolved.size == 10
        assert b"".join(resolved.chunks) == b"%PDF-bytes"

    def test_inline_payload_is_delivered_in_one_piece(
        self, make_repository: RepositoryFactory
    ) -> None:
        resolver, repo = _inline_resolver(make_repository)
        record_id = _seed(repo, RecordStatus.APPROVED, InlineBlobRef(data=b"%PDF-bytes"))

        chunks = list(resolver.resolve(record_id, ANONYMOUS).chunks)

        assert chunks == [b"%PDF-bytes"]

    def test_pending_record_hidden_from_anonymous(
        self, make_repository: RepositoryFactory
    ) -> None:
        resolver, repo = _inline_resolver(make_repository)
        record_id = _seed(repo, RecordStatus.PENDING, InlineBlobRef(data=b"%PDF"))

        with pytest.raises(NotFoundError, match="Notice not found"):
            resolver.resolve(record_id, ANONYMOUS)

    def test_pending_record_visible_to_admin(
        self, make_repository: RepositoryFactory
    ) -> None:
        resolver, repo = _inline_resolver(make_repository)
        record_id = _seed(repo, RecordStatus.PENDING, InlineBlobRef(data=b"%PDF"))

        assert b"".join(resolver.resolve(record_id, ADMIN).chunks) == b"%PDF"

    @pytest.mark.parametrize("status", [RecordStatus.REJECTED, RecordStatus.DELETED])
    def test_terminal_records_never_resolve(
        self, status: RecordStatus, make_repository: RepositoryFactory
    ) -> None:
        resolver, repo = _inline_resolver(make_repository)
        record_id = _seed(repo, status, InlineBlobRef(data=b"%PDF"))

        for caller in (ANONYMOUS, ADMIN):
            for disposition in Disposition:
                with pytest.raises(NotFoundError):
                    resolver.resolve(record_id, caller, disposition)

    def test_unknown_id_is_not_found(
        self, make_repository: RepositoryFactory
    ) -> None:
        resolver, _repo = _inline_resolver(make_repository)

        with pytest.raises(NotFoundError):
            resolver.resolve(404, ADMIN)

    def test_denied_and_unknown_look_the_same(
        self, make_repository: RepositoryFactory
    ) -> None:
        resolver, repo = _inline_resolver(make_repository)
        record_id = _seed(repo, RecordStatus.PENDING, InlineBlobRef(data=b"%PDF"))

        with pytest.raises(NotFoundError) as denied:
            resolver.resolve(record_id, ANONYMOUS)
        with pytest.raises(NotFoundError) as unknown:
            resolver.resolve(record_id + 100, ANONYMOUS)

        assert str(denied.value) == str(unknown.value) == "Notice not found"

    def test_visible_record_without_payload_is_storage_error(
        self, make_repository: RepositoryFactory
    ) -> None:
        resolver, repo = _inline_resolver(make_repository)
        record_id = _seed(repo, RecordStatus.APPROVED, InlineBlobRef(data=b""))

        with pytest.raises(StorageError, match="File content not found"):
            resolver.resolve(record_id, ANONYMOUS)

    def test_attachment_keeps_original_name_for_notices(
        self, make_repository: RepositoryFactory
    ) -> None:
        resolver, repo = _inline_resolver(make_repository)
        record_id = _seed(repo, RecordStatus.APPROVED, InlineBlobRef(data=b"%PDF"))

        resolved = resolver.resolve(record_id, ANONYMOUS, Disposition.ATTACHMENT)

        assert resolved.display_name == "exam.pdf"
        assert resolved.content_disposition == 'attachment; filename="exam.pdf"'

    def test_database_errors_become_storage_errors(self) -> None:
        repo = MagicMock(spec=RecordRepository)
        repo.kind = NOTICE
        repo.find_by_id.side_effect = psycopg.OperationalError("timeout")
        resolver = RetrievalResolver(repo, InlineBlobStore())

        with pytest.raises(StorageError, match="timeout"):
            resolver.resolve(1, ANONYMOUS)


class TestResolveFilesystem:
    def test_streams_file_in_chunks(
        self, tmp_path: Path, make_repository: RepositoryFactory
    ) -> None:
        resolver, repo, store = _filesystem_resolver(tmp_path, make_repository)
        ref = store.put(b"0123456789", "survey.pdf")
        record_id = _seed(repo, RecordStatus.APPROVED, ref, title="Student Survey")

        resolved = resolver.resolve(record_id, ANONYMOUS)

        assert list(resolved.chunks) == [b"0123", b"4567", b"89"]
        assert resolved.size == 10

    def test_download_name_comes_from_title(
        self, tmp_path: Path, make_repository: RepositoryFactory
    ) -> None:
        resolver, repo, store = _filesystem_resolver(tmp_path, make_repository)
        ref = store.put(b"%PDF", "SSS 2023.PDF")
        record_id = _seed(
            repo,
            RecordStatus.APPROVED,
            ref,
            title="Student Satisfaction Survey 2023-24",
            file_name="SSS 2023.PDF",
        )

        resolved = resolver.resolve(record_id, ANONYMOUS, Disposition.ATTACHMENT)

        assert resolved.display_name == "student_satisfaction_survey_2023_24.PDF"

    def test_inline_view_keeps_original_name(
        self, tmp_path: Path, make_repository: RepositoryFactory
    ) -> None:
        resolver, repo, store = _filesystem_resolver(tmp_path, make_repository)
        ref = store.put(b"%PDF", "sss.pdf")
        record_id = _seed(repo, RecordStatus.APPROVED, ref, file_name="sss.pdf")

        assert resolver.resolve(record_id, ANONYMOUS).display_name == "sss.pdf"

    def test_missing_file_is_storage_error(
        self, tmp_path: Path, make_repository: RepositoryFactory
    ) -> None:
        resolver, repo, _store = _filesystem_resolver(tmp_path, make_repository)
        record_id = _seed(
            repo, RecordStatus.APPROVED, FilesystemBlobRef(path="vanished.pdf")
        )

        with pytest.raises(StorageError, match="File not found on server"):
            resolver.resolve(record_id, ANONYMOUS)

    def test_missing_file_for_hidden_record_is_not_found(
        self, tmp_path: Path, make_repository: RepositoryFactory
    ) -> None:
        resolver, repo, _store = _filesystem_resolver(tmp_path, make_repository)
        record_id = _seed(
            repo, RecordStatus.PENDING, FilesystemBlobRef(path="vanished.pdf")
        )

        with pytest.raises(NotFoundError):
            resolver.resolve(record_id, ANONYMOUS)

    def test_read_error_mid_stream_ends_quietly(
        self, tmp_path: Path, make_repository: RepositoryFactory
    ) -> None:
        resolver, repo, store = _filesystem_resolver(tmp_path, make_repository)

        def failing_chunks():  # type: ignore[no-untyped-def]
            yield b"first"
            raise OSError("disk went away")

        store.stream = MagicMock(return_value=failing_chunks())  # type: ignore[method-assign]
        ref = store.put(b"%PDF", "a.pdf")
        record_id = _seed(repo, RecordStatus.APPROVED, ref)

        resolved = resolver.resolve(record_id, ANONYMOUS)

        assert list(resolved.chunks) == [b"first"]
