"""FastAPI application for the quality-assurance portal backend."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from qa_portal.api.errors import register_exception_handlers
from qa_portal.api.routers.health import health_router
from qa_portal.api.routers.records import build_record_router
from qa_portal.api.uploads import UploadLimitMiddleware
from qa_portal.config.settings import Settings
from qa_portal.database.connection import close_pool, init_pool
from qa_portal.database.schema import init_schema
from qa_portal.logging.logger import Log
from qa_portal.records.kinds import RECORD_KINDS
from qa_portal.records.services import KindServices, build_services
from qa_portal.storage.root import BlobRootHandle, resolve_blob_root


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Resolve the upload root, open the pool and wire services.

    Skipped when services were injected at construction time.
    """
    owns_pool = False
    try:
        if app.state.services is None:
            settings: Settings = app.state.settings
            app.state.blob_root = resolve_blob_root(settings.upload_root_candidates)
            init_pool(settings)
            owns_pool = True
            init_schema()
            app.state.services = build_services(settings, app.state.blob_root)

        Log.info("QA portal API ready.")
        yield
    finally:
        if owns_pool:
            close_pool()
        Log.info("QA portal API shut down.")


def create_app(
    settings: Settings | None = None,
    services: dict[str, KindServices] | None = None,
    blob_root: BlobRootHandle | None = None,
) -> FastAPI:
    settings = settings if settings is not None else Settings()
    Log.configure(settings.log_level)

    app = FastAPI(
        title="QA Portal",
        description="Uploads, approval workflow and file delivery for notices, surveys and minutes.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services
    app.state.blob_root = blob_root

    # Added before CORS so its rejections still carry CORS headers.
    app.add_middleware(
        UploadLimitMiddleware,
        upload_paths=[f"/api/{kind.slug}/upload" for kind in RECORD_KINDS.values()],
        max_upload_bytes=settings.max_upload_bytes,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(health_router)
    for kind in RECORD_KINDS.values():
        app.include_router(build_record_router(kind))
    return app
