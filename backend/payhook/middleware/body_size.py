from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response


class BodyTooLarge(Exception):
    pass


def payload_too_large() -> PlainTextResponse:
    return PlainTextResponse("Payload too large", status_code=413)


async def read_body(request: Request, max_bytes: int) -> bytes:
    """Read the raw body, raising BodyTooLarge as soon as ``max_bytes`` is passed.

    Covers chunked uploads that carry no Content-Length.
    """
    chunks = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > max_bytes:
            raise BodyTooLarge(f"Body exceeds {max_bytes} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests whose declared body size exceeds ``max_bytes``."""

    def __init__(self, app, max_bytes: int = 1_048_576):  # 1 MiB
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length:
            try:
                too_large = int(content_length) > self.max_bytes
            except ValueError:
                return PlainTextResponse("Invalid Content-Length", status_code=400)
            if too_large:
                return payload_too_large()
        return await call_next(request)
