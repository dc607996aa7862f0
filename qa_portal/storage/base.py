from abc import ABC, abstractmethod
from collections.abc import Iterator

from qa_portal.records.models import BlobRef


class BaseBlobStore(ABC):
    """Contract for where uploaded file bytes live."""

    @abstractmethod
    def put(self, data: bytes, suggested_name: str) -> BlobRef:
        """Persist bytes and return a reference to store on the record.

        Raises:
            StorageError: if the bytes cannot be written.
        """

    @abstractmethod
    def get(self, ref: BlobRef) -> bytes:
        """Return the full payload.

        Raises:
            StorageError: if the payload cannot be located or read.
        """

    @abstractmethod
    def stream(self, ref: BlobRef, chunk_size: int) -> Iterator[bytes]:
        """Open the payload and return an iterator over its chunks.

        Opening happens before the iterator is returned, so a missing payload
        raises here and not on the first chunk.

        Raises:
            StorageError: if the payload cannot be located or opened.
        """

    @abstractmethod
    def size(self, ref: BlobRef) -> int | None:
        """Return the payload size in bytes, or None when it is not known."""
