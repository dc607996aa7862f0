from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

import psycopg

from qa_portal.database.repositories.record_repository import RecordRepository
from qa_portal.logging.logger import Log
from qa_portal.records.exceptions import NotFoundError, StorageError
from qa_portal.records.models import CallerContext, Record, RecordStatus
from qa_portal.retrieval.naming import content_disposition, download_name
from qa_portal.storage.base import BaseBlobStore


class Disposition(str, Enum):
    INLINE = "inline"
    ATTACHMENT = "attachment"


@dataclass(frozen=True)
class ResolvedFile:
    """A payload cleared for delivery, with the headers it should carry."""

    record_id: int
    mime_type: str
    display_name: str
    disposition: Disposition
    size: int | None
    chunks: Iterator[bytes]

    @property
    def content_disposition(self) -> str:
        return content_disposition(self.disposition.value, self.display_name)


def is_visible(record: Record, caller: CallerContext) -> bool:
    """Approved records are public, pending ones only for privileged callers."""
    if record.status == RecordStatus.APPROVED:
        return True
    if record.status == RecordStatus.PENDING:
        return caller.is_privileged
    return False


class RetrievalResolver:
    """Decides whether a caller may read a record and opens its payload."""

    def __init__(
        self,
        repository: RecordRepository,
        blob_store: BaseBlobStore,
        chunk_size: int = 64 * 1024,
    ) -> None:
        self._repository = repository
        self._blob_store = blob_store
        self._chunk_size = chunk_size
        self._kind = repository.kind

    def resolve(
        self,
        record_id: int,
        caller: CallerContext,
        disposition: Disposition = Disposition.INLINE,
    ) -> ResolvedFile:
        """Resolve a record to its payload stream.

        Raises:
            NotFoundError: if the record is unknown or not visible to the caller.
            StorageError: if a visible record's payload cannot be located.
        """
        try:
            record = self._repository.find_by_id(record_id)
        except NotFoundError:
            raise NotFoundError(f"{self._kind.label} not found") from None
        except psycopg.Error as exc:
            raise StorageError(f"Failed to load {self._kind.label.lower()} {record_id}: {exc}") from exc

        if not is_visible(record, caller):
            Log.info(f"{self._kind.label} {record_id} not visible (status={record.status.name.lower()})")
            raise NotFoundError(f"{self._kind.label} not found")

        if record.blob is None:
            Log.error(f"{self._kind.label} {record_id} has no payload reference")
            raise StorageError("File content not found")

        chunks = self._blob_store.stream(record.blob, self._chunk_size)
        Log.info(f"Serving {self._kind.name} {record_id} as {disposition.value}")
        return ResolvedFile(
            record_id=record.id,
            mime_type=record.file_mimetype,
            display_name=self._display_name(record, disposition),
            disposition=disposition,
            size=self._blob_store.size(record.blob),
            chunks=self._guard(chunks, record.id),
        )

    def _display_name(self, record: Record, disposition: Disposition) -> str:
        if disposition is Disposition.ATTACHMENT and self._kind.download_name_from_title:
            return download_name(record.title, record.file_name)
        return record.file_name

    def _guard(self, chunks: Iterator[bytes], record_id: int) -> Iterator[bytes]:
        # Headers are already on the wire once the first chunk is pulled; a
        # later read failure can only be logged and end the body.
        try:
            yield from chunks
        except OSError as exc:
            Log.error(f"Error streaming {self._kind.name} {record_id}: {exc}")
