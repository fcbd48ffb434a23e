import logging

from fastapi import HTTPException
from fastapi.responses import JSONResponse

from app.errors import PayloadTooLargeError

logger = logging.getLogger(__name__)

# Room for multipart boundaries and part headers around the file itself
MULTIPART_ALLOWANCE = 16 * 1024


class UploadLimitMiddleware:
    """
    Rejects request bodies over the upload ceiling before they are parsed.

    A declared Content-Length over the limit is answered with 413 right away.
    Bodies without one are counted as they arrive and stopped once they
    cross the limit.
    """

    def __init__(self, app, max_bytes: int, paths=("/api/analyze",)):
        self.app = app
        self.limit = max_bytes + MULTIPART_ALLOWANCE
        self.paths = set(paths)

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or scope["path"] not in self.paths:
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers") or [])
        content_length = headers.get(b"content-length")
        if content_length is not None and content_length.isdigit() and int(content_length) > self.limit:
            logger.info(f"Rejected upload to {scope['path']}: Content-Length {int(content_length)}")
            response = JSONResponse(
                status_code=PayloadTooLargeError.status_code,
                content={"detail": PayloadTooLargeError.detail},
            )
            await response(scope, receive, send)
            return

        received = 0

        async def counting_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.limit:
                    logger.info(f"Rejected upload to {scope['path']}: body over {self.limit} bytes")
                    raise HTTPException(
                        status_code=PayloadTooLargeError.status_code,
                        detail=PayloadTooLargeError.detail,
                    )
            return message

        await self.app(scope, counting_receive, send)
