"""Upload body limits applied before and while the multipart body is read."""

from collections.abc import Iterable
from typing import BinaryIO

from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from qa_portal.logging.logger import Log
from qa_portal.records.exceptions import ValidationError

# Form fields, part headers and boundaries around the file part.
MULTIPART_OVERHEAD_BYTES = 16 * 1024


def too_large_message(limit: int) -> str:
    return f"File too large. Maximum size is {limit} bytes"


def read_bounded(stream: BinaryIO, limit: int, chunk_size: int = 64 * 1024) -> bytes:
    """Read an upload body, giving up as soon as it exceeds limit bytes.

    Raises:
        ValidationError: if the body is larger than limit.
    """
    buffer = bytearray()
    while chunk := stream.read(chunk_size):
        buffer.extend(chunk)
        if len(buffer) > limit:
            raise ValidationError(too_large_message(limit))
    return bytes(buffer)


class UploadTooLarge(Exception):
    """Raised from receive() once an upload body passes its byte budget."""


class UploadLimitMiddleware:
    """Refuses oversize upload bodies before the multipart parser spools them.

    A declared Content-Length over the budget is answered with 400 without
    reading the body. Bodies without a usable length are counted as they
    arrive and cut off once the count passes the budget, so at most one ASGI
    chunk beyond it is ever received.
    """

    def __init__(
        self,
        app: ASGIApp,
        upload_paths: Iterable[str],
        max_upload_bytes: int,
        overhead_bytes: int = MULTIPART_OVERHEAD_BYTES,
    ) -> None:
        self.app = app
        self.upload_paths = frozenset(upload_paths)
        self.max_upload_bytes = max_upload_bytes
        self.max_body_bytes = max_upload_bytes + overhead_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if (
            scope["type"] != "http"
            or scope["method"] != "POST"
            or scope["path"] not in self.upload_paths
        ):
            await self.app(scope, receive, send)
            return

        declared = _content_length(scope)
        if declared is not None and declared > self.max_body_bytes:
            Log.info(f"Refused upload to {scope['path']}: Content-Length {declared}")
            await self._reject(scope, receive, send)
            return

        received = 0
        exceeded = False

        async def counting_receive() -> Message:
            nonlocal received, exceeded
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    exceeded = True
                    raise UploadTooLarge()
            return message

        async def guarded_send(message: Message) -> None:
            # The app's own error response for the aborted parse is dropped.
            if not exceeded:
                await send(message)

        try:
            await self.app(scope, counting_receive, guarded_send)
        except UploadTooLarge:
            exceeded = True

        if exceeded:
            Log.info(f"Cut off upload to {scope['path']} after {received} bytes")
            await self._reject(scope, receive, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        response = JSONResponse(
            status_code=400,
            content={"message": too_large_message(self.max_upload_bytes)},
        )
        await response(scope, receive, send)


def _content_length(scope: Scope) -> int | None:
    for name, value in scope["headers"]:
        if name == b"content-length":
            try:
                return int(value)
            except ValueError:
                return None
    return None
