from dataclasses import dataclass

from qa_portal.config.settings import Settings
from qa_portal.database.repositories.record_repository import RecordRepository
from qa_portal.ingestion.pipeline import IngestionPipeline
from qa_portal.records.kinds import RECORD_KINDS, RecordKind
from qa_portal.retrieval.resolver import RetrievalResolver
from qa_portal.storage.factory import BlobStoreFactory
from qa_portal.storage.root import BlobRootHandle
from qa_portal.workflow.approval import ApprovalWorkflow


@dataclass(frozen=True)
class KindServices:
    """Everything the HTTP layer needs for one record kind."""

    kind: RecordKind
    repository: RecordRepository
    ingestion: IngestionPipeline
    workflow: ApprovalWorkflow
    resolver: RetrievalResolver


def build_kind_services(
    kind: RecordKind,
    settings: Settings,
    blob_root: BlobRootHandle | None,
    repository: RecordRepository | None = None,
) -> KindServices:
    """Wire the store, pipeline, workflow and resolver for one kind."""
    repository = repository if repository is not None else RecordRepository(kind)
    blob_store = BlobStoreFactory.create(settings.storage_for(kind.name), blob_root)
    return KindServices(
        kind=kind,
        repository=repository,
        ingestion=IngestionPipeline(
            repository,
            blob_store,
            allowed_mime_types=settings.allowed_mime_types,
            max_upload_bytes=settings.max_upload_bytes,
        ),
        workflow=ApprovalWorkflow(repository),
        resolver=RetrievalResolver(
            repository, blob_store, chunk_size=settings.stream_chunk_bytes
        ),
    )


def build_services(
    settings: Settings,
    blob_root: BlobRootHandle | None,
) -> dict[str, KindServices]:
    return {
        name: build_kind_services(kind, settings, blob_root)
        for name, kind in RECORD_KINDS.items()
    }
