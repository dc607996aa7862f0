from collections.abc import Iterator

from qa_portal.records.exceptions import StorageError
from qa_portal.records.models import BlobRef, InlineBlobRef
from qa_portal.storage.base import BaseBlobStore


class InlineBlobStore(BaseBlobStore):
    """Keeps payloads in the record row itself."""

    def put(self, data: bytes, suggested_name: str) -> BlobRef:
        return InlineBlobRef(data=data)

    def get(self, ref: BlobRef) -> bytes:
        return self._data(ref)

    def stream(self, ref: BlobRef, chunk_size: int) -> Iterator[bytes]:
        return iter((self._data(ref),))

    def size(self, ref: BlobRef) -> int | None:
        return len(self._data(ref))

    def _data(self, ref: BlobRef) -> bytes:
        if not isinstance(ref, InlineBlobRef):
            raise StorageError(f"Inline store cannot read {type(ref).__name__}")
        if not ref.data:
            raise StorageError("File content not found")
        return ref.data
