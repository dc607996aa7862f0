from collections.abc import Collection

import psycopg

from qa_portal.database.repositories.record_repository import RecordRepository
from qa_portal.ingestion.models import IncomingFile, IngestResult, UploadMetadata
from qa_portal.logging.logger import Log
from qa_portal.records.exceptions import ForbiddenError, StorageError, ValidationError
from qa_portal.records.models import CallerContext, FilesystemBlobRef, NewRecord
from qa_portal.storage.base import BaseBlobStore


class IngestionPipeline:
    """Validates an upload, stores its bytes, then inserts its record.

    Checks run in order and the first failure wins: privilege, file present,
    required fields, MIME type, size.
    """

    def __init__(
        self,
        repository: RecordRepository,
        blob_store: BaseBlobStore,
        allowed_mime_types: Collection[str],
        max_upload_bytes: int,
    ) -> None:
        self._repository = repository
        self._blob_store = blob_store
        self._allowed_mime_types = frozenset(allowed_mime_types)
        self._max_upload_bytes = max_upload_bytes
        self._kind = repository.kind

    @property
    def max_upload_bytes(self) -> int:
        return self._max_upload_bytes

    def precheck(
        self,
        metadata: UploadMetadata,
        file_name: str | None,
        mime_type: str | None,
        caller: CallerContext,
    ) -> None:
        """Run every check that does not need the file body.

        Raises:
            ForbiddenError: if the kind only accepts privileged uploads.
            ValidationError: on a missing file, missing field or disallowed type.
        """
        if self._kind.upload_requires_privilege and not caller.is_privileged:
            raise ForbiddenError("Admin access required")
        if not file_name:
            raise ValidationError("No file uploaded")
        if not _filled(metadata.title) or not _filled(metadata.secondary_date):
            raise ValidationError(f"Title and {self._kind.date_label} are required")
        if mime_type not in self._allowed_mime_types:
            allowed = ", ".join(sorted(self._allowed_mime_types))
            raise ValidationError(f"Only {allowed} files are allowed")

    def check_size(self, size: int) -> None:
        """Raises ValidationError for empty uploads and ones above the ceiling."""
        if size == 0:
            raise ValidationError("Uploaded file is empty")
        if size > self._max_upload_bytes:
            raise ValidationError(
                f"File too large. Maximum size is {self._max_upload_bytes} bytes"
            )

    def ingest(
        self,
        metadata: UploadMetadata,
        upload: IncomingFile | None,
        caller: CallerContext,
    ) -> IngestResult:
        """Persist an upload and return the new record's public summary.

        Raises:
            ForbiddenError: if the kind only accepts privileged uploads.
            ValidationError: if any input check fails; nothing is persisted.
            StorageError: if writing the blob or the record fails.
        """
        self.precheck(
            metadata,
            upload.file_name if upload else None,
            upload.mime_type if upload else None,
            caller,
        )
        if upload is None:
            raise ValidationError("No file uploaded")
        self.check_size(len(upload.data))

        title = (metadata.title or "").strip()
        secondary_date = (metadata.secondary_date or "").strip()
        status = self._kind.initial_status(caller)

        blob = self._blob_store.put(upload.data, upload.file_name)
        try:
            record_id = self._repository.create(
                NewRecord(
                    title=title,
                    secondary_date=secondary_date,
                    file_name=upload.file_name,
                    file_mimetype=upload.mime_type,
                    blob=blob,
                    status=status,
                )
            )
        except psycopg.Error as exc:
            if isinstance(blob, FilesystemBlobRef):
                Log.warning(f"Orphaned upload {blob.path} after failed insert")
            raise StorageError(f"Failed to save {self._kind.label.lower()}: {exc}") from exc

        Log.info(
            f"{self._kind.label} {record_id} uploaded: {upload.file_name!r} "
            f"({len(upload.data)} bytes, status={status.name.lower()})"
        )
        return IngestResult(
            id=record_id,
            status=status,
            title=title,
            secondary_date=secondary_date,
            file_name=upload.file_name,
        )


def _filled(value: str | None) -> bool:
    return value is not None and value.strip() != ""
