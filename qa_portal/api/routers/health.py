from datetime import datetime, timezone

from fastapi import APIRouter, Request

from qa_portal.api.schemas import HealthResponse
from qa_portal.database.schema import ping

health_router = APIRouter(tags=["Health"])


@health_router.get("/health", response_model=HealthResponse)
def health(request: Request) -> HealthResponse:
    """Report database reachability and the upload root in use."""
    database_ok = ping()
    blob_root = request.app.state.blob_root
    return HealthResponse(
        status="ok" if database_ok else "degraded",
        database=database_ok,
        blob_root=str(blob_root.path) if blob_root is not None else None,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
