"""Routes shared by every record kind.

Each kind gets the same surface under /api/<slug>: upload, approved and
pending listings, soft delete, approve/reject, inline view and download.
"""

from fastapi import APIRouter, Body, Depends, File, Form, Path, Request, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse

from qa_portal.api.dependencies import get_caller, require_admin
from qa_portal.api.schemas import DecisionRequest, record_item, upload_response
from qa_portal.api.uploads import read_bounded
from qa_portal.ingestion.models import IncomingFile, UploadMetadata
from qa_portal.records.exceptions import ValidationError
from qa_portal.records.kinds import RecordKind
from qa_portal.records.models import CallerContext, RecordStatus
from qa_portal.records.services import KindServices
from qa_portal.retrieval.resolver import Disposition, ResolvedFile


def build_record_router(kind: RecordKind) -> APIRouter:
    router = APIRouter(prefix=f"/api/{kind.slug}", tags=[kind.label])

    def services(request: Request) -> KindServices:
        return request.app.state.services[kind.name]

    @router.post("/upload", status_code=201)
    def upload_record(
        request: Request,
        file: UploadFile | None = File(None),
        title: str | None = Form(None),
        secondary_date: str | None = Form(None, alias=kind.date_field),
        caller: CallerContext = Depends(get_caller),
    ) -> JSONResponse:
        svc = services(request)
        metadata = UploadMetadata(title=title, secondary_date=secondary_date)
        file_name = file.filename if file is not None else None
        mime_type = file.content_type if file is not None else None

        # Type and field checks happen before the body is read.
        svc.ingestion.precheck(metadata, file_name, mime_type, caller)
        if file is None or not file_name or not mime_type:
            raise ValidationError("No file uploaded")
        data = read_bounded(
            file.file,
            svc.ingestion.max_upload_bytes,
            request.app.state.settings.stream_chunk_bytes,
        )

        result = svc.ingestion.ingest(
            metadata,
            IncomingFile(file_name=file_name, mime_type=mime_type, data=data),
            caller,
        )
        return JSONResponse(status_code=201, content=upload_response(kind, result))

    @router.get("")
    def list_approved(request: Request) -> JSONResponse:
        records = services(request).repository.list_by_status(RecordStatus.APPROVED)
        return JSONResponse(
            content={
                "message": f"{len(records)} approved {kind.slug}",
                "items": [record_item(kind, r) for r in records],
            }
        )

    @router.get("/pending", dependencies=[Depends(require_admin)])
    def list_pending(request: Request) -> JSONResponse:
        records = services(request).repository.list_by_status(RecordStatus.PENDING)
        return JSONResponse(
            content={
                "message": f"{len(records)} pending {kind.slug}",
                "items": [record_item(kind, r) for r in records],
            }
        )

    @router.delete("/{record_id}", dependencies=[Depends(require_admin)])
    def delete_record(request: Request, record_id: int = Path(...)) -> JSONResponse:
        services(request).workflow.delete(record_id)
        return JSONResponse(content={"message": f"{kind.label} deleted successfully"})

    @router.put("/approve/{record_id}", dependencies=[Depends(require_admin)])
    def decide_record(
        request: Request,
        record_id: int = Path(...),
        decision: DecisionRequest | None = Body(None),
    ) -> JSONResponse:
        action = decision.action if decision is not None else None
        status = services(request).workflow.decide(record_id, action)
        verb = "approved" if status == RecordStatus.APPROVED else "rejected"
        return JSONResponse(
            content={
                "message": f"{kind.label} {verb} successfully",
                "status": int(status),
            }
        )

    @router.get("/file/{record_id}")
    def view_file(
        request: Request,
        record_id: int = Path(...),
        caller: CallerContext = Depends(get_caller),
    ) -> StreamingResponse:
        resolved = services(request).resolver.resolve(record_id, caller, Disposition.INLINE)
        return _file_response(resolved)

    @router.get("/download/{record_id}")
    def download_file(
        request: Request,
        record_id: int = Path(...),
        caller: CallerContext = Depends(get_caller),
    ) -> StreamingResponse:
        resolved = services(request).resolver.resolve(
            record_id, caller, Disposition.ATTACHMENT
        )
        return _file_response(resolved)

    return router


def _file_response(resolved: ResolvedFile) -> StreamingResponse:
    headers = {"Content-Disposition": resolved.content_disposition}
    if resolved.size is not None:
        headers["Content-Length"] = str(resolved.size)
    return StreamingResponse(
        resolved.chunks, media_type=resolved.mime_type, headers=headers
    )
