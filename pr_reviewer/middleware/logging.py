"""
Request logging middleware.

Tags every request with an ``X-Request-ID`` (echoing the caller's when given)
and logs one structured line per request with its status and duration.
"""

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from pr_reviewer.utils.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and duration of each request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        log = logger.with_context(request_id=request_id)

        start_time = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            log.error(
                f"Unhandled error: {request.method} {request.url.path}",
                exc_info=True,
                extra={"http_method": request.method, "path": request.url.path},
            )
            raise

        duration_ms = round((time.monotonic() - start_time) * 1000, 2)
        log.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                "http_method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
