from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from qa_portal.logging.logger import Log
from qa_portal.records.exceptions import (
    ForbiddenError,
    NotFoundError,
    PortalError,
    StorageError,
    ValidationError,
)

STATUS_CODES: dict[type[PortalError], int] = {
    ValidationError: 400,
    ForbiddenError: 403,
    NotFoundError: 404,
    StorageError: 500,
}


def status_code_for(exc: PortalError) -> int:
    for exc_type, status_code in STATUS_CODES.items():
        if isinstance(exc, exc_type):
            return status_code
    return 500


async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        Log.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        Log.info(f"{request.method} {request.url.path} -> {status_code}: {exc}")
    return JSONResponse(status_code=status_code, content={"message": str(exc)})


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    detail = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        detail = f"Invalid request: {location}: {first.get('msg', '')}".rstrip(": ")
    return JSONResponse(status_code=400, content={"message": detail})


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    Log.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"message": "Server Error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PortalError, portal_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
