from qa_portal.storage.base import BaseBlobStore
from qa_portal.storage.filesystem_store import FilesystemBlobStore
from qa_portal.storage.inline_store import InlineBlobStore
from qa_portal.storage.root import BlobRootHandle


class BlobStoreFactory:
    """Creates the blob store variant configured for a record kind."""

    VARIANTS = ("filesystem", "inline")

    @classmethod
    def create(cls, variant: str, root: BlobRootHandle | None) -> BaseBlobStore:
        variant = variant.lower()
        if variant == "inline":
            return InlineBlobStore()
        if variant == "filesystem":
            if root is None:
                raise ValueError("Filesystem blob store requires a resolved upload root")
            return FilesystemBlobStore(root)
        raise ValueError(
            f"Unknown blob storage '{variant}'. Choose from: {list(cls.VARIANTS)}"
        )
