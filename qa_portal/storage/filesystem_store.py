import random
import time
from collections.abc import Iterator
from pathlib import Path, PurePath
from typing import BinaryIO

from qa_portal.logging.logger import Log
from qa_portal.records.exceptions import StorageError
from qa_portal.records.models import BlobRef, FilesystemBlobRef
from qa_portal.storage.base import BaseBlobStore
from qa_portal.storage.root import BlobRootHandle


def generate_blob_name(suggested_name: str) -> str:
    """Build '<epoch-millis>-<random>.<ext>' keeping only the suggested extension."""
    suffix = PurePath(suggested_name).suffix.lower()
    if not suffix[1:].isalnum():
        suffix = ""
    return f"{int(time.time() * 1000)}-{random.randint(0, 999_999_999)}{suffix}"


class FilesystemBlobStore(BaseBlobStore):
    """Stores payloads as files directly under the blob root."""

    def __init__(self, root: BlobRootHandle) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root.path

    def put(self, data: bytes, suggested_name: str) -> BlobRef:
        name = generate_blob_name(suggested_name)
        path = self.root / name
        try:
            with path.open("xb") as fh:
                fh.write(data)
        except OSError as exc:
            raise StorageError(f"Failed to save file: {exc}") from exc
        Log.debug(f"Stored {len(data)} bytes at {path}")
        return FilesystemBlobRef(path=name)

    def get(self, ref: BlobRef) -> bytes:
        path = self._resolve(ref)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StorageError(f"File not found on server: {path.name}") from exc

    def stream(self, ref: BlobRef, chunk_size: int) -> Iterator[bytes]:
        path = self._resolve(ref)
        try:
            fh = path.open("rb")
        except OSError as exc:
            raise StorageError(f"File not found on server: {path.name}") from exc
        return _iter_file(fh, chunk_size)

    def size(self, ref: BlobRef) -> int | None:
        try:
            return self._resolve(ref).stat().st_size
        except OSError:
            return None

    def _resolve(self, ref: BlobRef) -> Path:
        if not isinstance(ref, FilesystemBlobRef):
            raise StorageError(f"Filesystem store cannot read {type(ref).__name__}")
        # Only the basename is honoured so stored paths never leave the root.
        return self.root / PurePath(ref.path).name


def _iter_file(fh: BinaryIO, chunk_size: int) -> Iterator[bytes]:
    with fh:
        while chunk := fh.read(chunk_size):
            yield chunk
