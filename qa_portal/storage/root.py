import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from qa_portal.logging.logger import Log
from qa_portal.records.exceptions import UpstreamConfigError


@dataclass(frozen=True)
class BlobRootHandle:
    """The blob root directory chosen once at startup."""

    path: Path


def probe_writable(directory: Path) -> None:
    """Create the directory if needed and prove it accepts writes.

    Raises:
        OSError: if the directory cannot be created, written or cleaned up.
    """
    directory.mkdir(parents=True, exist_ok=True)
    probe = directory / f".probe-{uuid.uuid4().hex}"
    probe.write_bytes(b"")
    probe.unlink()


def resolve_blob_root(candidates: Iterable[str | Path]) -> BlobRootHandle:
    """Return a handle on the first candidate directory that is writable.

    Raises:
        UpstreamConfigError: if no candidate passes the write probe.
    """
    tried: list[str] = []
    for candidate in candidates:
        directory = Path(candidate).expanduser().resolve()
        try:
            probe_writable(directory)
        except OSError as exc:
            Log.warning(f"Upload root {directory} rejected: {exc}")
            tried.append(str(directory))
            continue
        Log.info(f"Using upload root {directory}")
        return BlobRootHandle(path=directory)

    raise UpstreamConfigError(f"No writable upload root among: {tried}")
