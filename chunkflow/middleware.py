from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from chunkflow.configs import settings


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware that rejects request bodies larger than the configured limit.

    Declared sizes are checked from ``Content-Length``. Bodies sent without one
    (chunked transfer encoding) are read and measured before the route runs.
    """

    async def dispatch(self, request: Request, call_next):
        limit = settings.max_request_body_mb * 1024 * 1024
        content_length = request.headers.get("content-length")

        if content_length and content_length.isdigit():
            too_large = int(content_length) > limit
        elif request.method in ("POST", "PUT", "PATCH"):
            too_large = len(await request.body()) > limit
        else:
            too_large = False

        if too_large:
            return JSONResponse(
                status_code=413,
                content={"success": False, "error": f"Request body exceeds {settings.max_request_body_mb}MB"},
            )

        return await call_next(request)
